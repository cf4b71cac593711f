"""Patch Engine UI: Qt models for the hunk checklist, aligned diff rows and logs."""

from __future__ import annotations

import json
import time
from typing import List, Dict, Any, Optional

from PyQt6.QtCore import Qt, QAbstractTableModel, QModelIndex
from PyQt6.QtGui import QBrush, QColor

from ..core.models import AuditEntry, LineKind, ParsedDiff
from ..core.selection import HunkSelection


class HunkTableModel(QAbstractTableModel):
    """
    One row per hunk; column 0 is checkable and drives HunkSelection, so a
    view toggling a checkbox goes through the same per-hunk state as the engine.
    """

    COL_SELECTED = 0
    COL_HEADER = 1
    COL_ADDED = 2
    COL_REMOVED = 3
    COL_WARNINGS = 4

    def __init__(self, selection: Optional[HunkSelection] = None):
        super().__init__()
        self._selection = selection
        self._header = ["Apply", "Hunk", "+", "-", "Warnings"]
        self._bg_warn = QBrush(QColor(252, 246, 220))

    def set_selection(self, selection: Optional[HunkSelection]) -> None:
        self.beginResetModel()
        self._selection = selection
        self.endResetModel()

    def _diff(self) -> Optional[ParsedDiff]:
        return self._selection.diff if self._selection is not None else None

    def rowCount(self, parent=QModelIndex()) -> int:
        diff = self._diff()
        return 0 if parent.isValid() or diff is None else len(diff.hunks)

    def columnCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else 5

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole):
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            return self._header[section] if 0 <= section < len(self._header) else ""
        return str(section + 1)

    def flags(self, index: QModelIndex):
        if not index.isValid():
            return Qt.ItemFlag.NoItemFlags
        base = Qt.ItemFlag.ItemIsEnabled | Qt.ItemFlag.ItemIsSelectable
        if index.column() == self.COL_SELECTED:
            base |= Qt.ItemFlag.ItemIsUserCheckable
        return base

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        diff = self._diff()
        if not index.isValid() or diff is None:
            return None
        h = diff.hunks[index.row()]
        c = index.column()
        warnings = diff.warnings_for(h.id)

        if role == Qt.ItemDataRole.CheckStateRole and c == self.COL_SELECTED:
            return Qt.CheckState.Checked if h.selected else Qt.CheckState.Unchecked
        if role == Qt.ItemDataRole.DisplayRole:
            if c == self.COL_HEADER:
                return h.header
            if c == self.COL_ADDED:
                return str(h.lines_added())
            if c == self.COL_REMOVED:
                return str(h.lines_removed())
            if c == self.COL_WARNINGS:
                return str(len(warnings)) if warnings else ""
            return None
        if role == Qt.ItemDataRole.ToolTipRole and warnings:
            return "\n".join(w.message for w in warnings)
        if role == Qt.ItemDataRole.BackgroundRole and warnings:
            return self._bg_warn
        if role == Qt.ItemDataRole.UserRole:
            return h.id
        return None

    def setData(self, index: QModelIndex, value: Any, role: int = Qt.ItemDataRole.EditRole) -> bool:
        if self._selection is None or not index.isValid():
            return False
        if role != Qt.ItemDataRole.CheckStateRole or index.column() != self.COL_SELECTED:
            return False
        h = self._selection.diff.hunks[index.row()]
        self._selection.set_selected(h.id, Qt.CheckState(value) == Qt.CheckState.Checked)
        self.dataChanged.emit(index, index, [Qt.ItemDataRole.CheckStateRole])
        return True

    def select_all(self) -> None:
        if self._selection is not None:
            self._selection.select_all()
            self._emit_check_column()

    def select_none(self) -> None:
        if self._selection is not None:
            self._selection.select_none()
            self._emit_check_column()

    def _emit_check_column(self) -> None:
        rows = self.rowCount()
        if rows:
            self.dataChanged.emit(
                self.index(0, self.COL_SELECTED),
                self.index(rows - 1, self.COL_SELECTED),
                [Qt.ItemDataRole.CheckStateRole],
            )


class DiffAlignmentModel(QAbstractTableModel):
    """
    Aligned rows, 4 columns:
      0 old line number (or blank)
      1 old text (or blank)
      2 new line number (or blank)
      3 new text (or blank)

    Rows of deselected hunks are drawn muted.
    """

    KIND_CONTEXT = "context"
    KIND_ADD = "add"
    KIND_DEL = "del"
    KIND_HUNK = "hunk"

    def __init__(self):
        super().__init__()
        self._rows: List[Dict[str, Any]] = []
        self._header = ["Old", "Old Text", "New", "New Text"]

        self._bg_context = QBrush(QColor(255, 255, 255))
        self._bg_line_no = QBrush(QColor(242, 242, 242))
        self._bg_add = QBrush(QColor(228, 246, 228))
        self._bg_del = QBrush(QColor(246, 228, 228))
        self._bg_hunk = QBrush(QColor(248, 248, 248))

        self._fg_default = QBrush(QColor(20, 20, 20))
        self._fg_muted = QBrush(QColor(150, 150, 150))

    def rowCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else 4

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole):
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            return self._header[section] if 0 <= section < len(self._header) else ""
        return str(section + 1)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid():
            return None
        row = self._rows[index.row()]
        c = index.column()

        if role == Qt.ItemDataRole.DisplayRole:
            return (row["old_no"], row["old_text"], row["new_no"], row["new_text"])[c] if 0 <= c < 4 else ""
        if role == Qt.ItemDataRole.TextAlignmentRole:
            if c in (0, 2):
                return int(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
            return int(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter)
        if role == Qt.ItemDataRole.BackgroundRole:
            kind = row["kind"]
            if c in (0, 2):
                return self._bg_line_no
            if kind == self.KIND_HUNK:
                return self._bg_hunk
            if kind == self.KIND_ADD:
                return self._bg_add if c == 3 else self._bg_context
            if kind == self.KIND_DEL:
                return self._bg_del if c == 1 else self._bg_context
            return self._bg_context
        if role == Qt.ItemDataRole.ForegroundRole:
            return self._fg_default if row["selected"] else self._fg_muted
        if role == Qt.ItemDataRole.UserRole:
            return row
        return None

    def rows(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def build_from_diff(self, diff: ParsedDiff) -> None:
        rows: List[Dict[str, Any]] = []
        for h in diff.hunks:
            rows.append(self._row(h.id, h.selected, self.KIND_HUNK, "", h.header, "", h.header))
            for ln in h.lines:
                old_no = str(ln.old_line_number) if ln.old_line_number is not None else ""
                new_no = str(ln.new_line_number) if ln.new_line_number is not None else ""
                if ln.kind == LineKind.CONTEXT:
                    rows.append(self._row(h.id, h.selected, self.KIND_CONTEXT, old_no, ln.text, new_no, ln.text))
                elif ln.kind == LineKind.REMOVE:
                    rows.append(self._row(h.id, h.selected, self.KIND_DEL, old_no, ln.text, "", ""))
                else:
                    rows.append(self._row(h.id, h.selected, self.KIND_ADD, "", "", new_no, ln.text))
        self.beginResetModel()
        self._rows = rows
        self.endResetModel()

    def _row(self, hunk_id: int, selected: bool, kind: str, old_no: str, old_text: str, new_no: str, new_text: str):
        return {
            "hunk_id": hunk_id,
            "selected": selected,
            "kind": kind,
            "old_no": old_no,
            "old_text": old_text,
            "new_no": new_no,
            "new_text": new_text,
        }


class LogTableModel(QAbstractTableModel):
    """Outcome log entries ({"ts", "level", "message", **fields})."""

    def __init__(self):
        super().__init__()
        self._rows: List[Dict[str, Any]] = []
        self._header = ["Time", "Level", "Message"]

    def rowCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else 3

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole):
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            return self._header[section]
        return str(section + 1)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid():
            return None
        row = self._rows[index.row()]
        c = index.column()

        if role == Qt.ItemDataRole.DisplayRole:
            if c == 0:
                return time.strftime("%H:%M:%S", time.localtime(row.get("ts", 0.0)))
            if c == 1:
                return row.get("level", "")
            if c == 2:
                return row.get("message", "")
        if role == Qt.ItemDataRole.ToolTipRole:
            det = {k: v for k, v in row.items() if k not in ("ts", "level", "message")}
            if det:
                return json.dumps(det, indent=2, default=str)
        return None

    def extend(self, entries: List[Dict[str, Any]]) -> None:
        if not entries:
            return
        first = len(self._rows)
        self.beginInsertRows(QModelIndex(), first, first + len(entries) - 1)
        self._rows.extend(entries)
        self.endInsertRows()

    def clear(self) -> None:
        self.beginResetModel()
        self._rows = []
        self.endResetModel()


class AuditTableModel(QAbstractTableModel):
    def __init__(self, entries: Optional[List[AuditEntry]] = None):
        super().__init__()
        self._rows: List[AuditEntry] = list(entries or [])
        self._header = ["Time", "File", "Action", "Hunks", "Backup", "Notes"]

    def rowCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else 6

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole):
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            return self._header[section]
        return str(section + 1)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid() or role != Qt.ItemDataRole.DisplayRole:
            return None
        e = self._rows[index.row()]
        c = index.column()
        if c == 0:
            return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(e.timestamp))
        if c == 1:
            return e.file_path
        if c == 2:
            return e.action.value
        if c == 3:
            return f"{e.diff_summary.selected_hunks}/{e.diff_summary.total_hunks}"
        if c == 4:
            return e.backup_path or ""
        if c == 5:
            return e.notes or ""
        return None

    def set_entries(self, entries: List[AuditEntry]) -> None:
        self.beginResetModel()
        self._rows = list(entries)
        self.endResetModel()
