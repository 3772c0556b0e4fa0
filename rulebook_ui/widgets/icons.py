"""
rulebook_ui/widgets/icons.py -- DocumentIcon -> Qt standard pixmap table.

Every icon identifier maps through this explicit table; anything missing
falls back to the default entry.
"""

from __future__ import annotations

from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication, QStyle

from rulebook.models.icons import DEFAULT_ICON, DocumentIcon, resolve_icon

SP = QStyle.StandardPixmap

ICON_PIXMAPS: dict[DocumentIcon, QStyle.StandardPixmap] = {
    DocumentIcon.FILE_TEXT: SP.SP_FileIcon,
    DocumentIcon.BUILDING: SP.SP_ComputerIcon,
    DocumentIcon.LANDMARK: SP.SP_DriveHDIcon,
    DocumentIcon.ID_CARD: SP.SP_FileDialogInfoView,
    DocumentIcon.FILE_CHECK: SP.SP_DialogApplyButton,
    DocumentIcon.CHECK_CIRCLE: SP.SP_DialogYesButton,
    DocumentIcon.PEN_TOOL: SP.SP_FileDialogDetailedView,
    DocumentIcon.RECEIPT: SP.SP_FileDialogContentsView,
    DocumentIcon.SHIELD_CHECK: SP.SP_VistaShield,
    DocumentIcon.CREDIT_CARD: SP.SP_DriveFDIcon,
    DocumentIcon.PLUG: SP.SP_DriveNetIcon,
    DocumentIcon.FILE_MINUS: SP.SP_TrashIcon,
}

VARIABLE_PIXMAP = SP.SP_FileDialogListView
AUTO_SEARCH_PIXMAP = SP.SP_FileDialogContentsView


def pixmap_for(icon) -> QStyle.StandardPixmap:
    """Standard pixmap for any icon identifier, known or not."""
    return ICON_PIXMAPS.get(resolve_icon(icon), ICON_PIXMAPS[DEFAULT_ICON])


def document_icon(icon) -> QIcon:
    return QApplication.style().standardIcon(pixmap_for(icon))


def standard_icon(pixmap: QStyle.StandardPixmap) -> QIcon:
    return QApplication.style().standardIcon(pixmap)
