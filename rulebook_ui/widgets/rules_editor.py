"""
rulebook_ui/widgets/rules_editor.py -- Rich editor for the rules document.

The editor is a QTextEdit over the rich content tree of
``rulebook.mentions.codec``:

    * every block is a paragraph, or a header (block heading level 1)
    * a mention is one U+FFFC character whose char format carries the
      mention type, id and label; ``MentionObjectHandler`` draws it as a
      coloured pill (documents green, variables blue, dangling grey)

Typing the trigger character opens the MentionPopup, driven by a
SuggestionSession; while it is open, navigation keys go to the session
and in the item step typed characters go to its query.  Committing
replaces the trigger (and anything typed after it) with the mention plus
one space.  A paragraph that comes to start with ``# `` turns into a
header; Backspace at the start of a header turns it back.

``contentChanged(str)`` is emitted with the storage text whenever it
actually changes; loading content or refreshing labels never emits it.
"""

from __future__ import annotations

import logging
from typing import Iterable

from PySide6.QtCore import QMimeData, QObject, QRectF, QSizeF, Qt, Signal
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QPainter,
    QPen,
    QTextBlock,
    QTextBlockFormat,
    QTextCharFormat,
    QTextCursor,
    QTextFormat,
    QTextObjectInterface,
)
from PySide6.QtWidgets import QTextEdit, QWidget

from rulebook.mentions.codec import (
    Block,
    BlockKind,
    MentionNode,
    RichContent,
    TextNode,
    insert_mention,
    parse,
    relabel,
    serialize,
)
from rulebook.mentions.resolver import NameLookup
from rulebook.mentions.tokens import HEADER_PREFIX, MentionType
from rulebook.suggestions import (
    TYPE_LABELS,
    MentionItem,
    SuggestionKey,
    SuggestionSession,
    SuggestionStep,
)
from rulebook_ui.theme.theme import (
    DOCUMENT_BACKGROUND,
    DOCUMENT_COLOR,
    MUTED_COLOR,
    VARIABLE_BACKGROUND,
    VARIABLE_COLOR,
)
from rulebook_ui.widgets.mention_popup import MentionPopup

logger = logging.getLogger(__name__)

OBJECT_REPLACEMENT = "\ufffc"

MENTION_OBJECT_TYPE = QTextFormat.ObjectTypes.UserObject.value + 1
PROP_TYPE = QTextFormat.Property.UserProperty.value + 1
PROP_ID = QTextFormat.Property.UserProperty.value + 2
PROP_LABEL = QTextFormat.Property.UserProperty.value + 3
PROP_DANGLING = QTextFormat.Property.UserProperty.value + 4

FONT_SIZE_ADJUSTMENT = QTextFormat.Property.FontSizeAdjustment.value
HEADER_SIZE_ADJUSTMENT = 2

_PILL_PADDING = 6.0
_PILL_RADIUS = 6.0

_KEY_MAP = {
    Qt.Key.Key_Up: SuggestionKey.UP,
    Qt.Key.Key_Down: SuggestionKey.DOWN,
    Qt.Key.Key_Return: SuggestionKey.ENTER,
    Qt.Key.Key_Enter: SuggestionKey.ENTER,
    Qt.Key.Key_Escape: SuggestionKey.ESCAPE,
    Qt.Key.Key_Backspace: SuggestionKey.BACKSPACE,
}


# ---------------------------------------------------------------------------
# Mention rendering
# ---------------------------------------------------------------------------

def _pill_colors(fmt: QTextFormat) -> tuple[QColor, QColor]:
    if fmt.boolProperty(PROP_DANGLING):
        return QColor(MUTED_COLOR), QColor("#eeeeee")
    if fmt.stringProperty(PROP_TYPE) == MentionType.VAR.value:
        return QColor(VARIABLE_COLOR), QColor(VARIABLE_BACKGROUND)
    return QColor(DOCUMENT_COLOR), QColor(DOCUMENT_BACKGROUND)


class MentionObjectHandler(QObject, QTextObjectInterface):
    """Sizes and paints mention characters as rounded pills."""

    def __init__(self, parent: QObject | None = None):
        QObject.__init__(self, parent)
        QTextObjectInterface.__init__(self)

    @staticmethod
    def _font(doc, fmt: QTextFormat) -> QFont:
        return fmt.toCharFormat().font().resolve(doc.defaultFont())

    def intrinsicSize(self, doc, pos_in_document, fmt) -> QSizeF:
        metrics = QFontMetricsF(self._font(doc, fmt))
        label = fmt.stringProperty(PROP_LABEL)
        return QSizeF(metrics.horizontalAdvance(label) + 2 * _PILL_PADDING, metrics.height())

    def drawObject(self, painter: QPainter, rect: QRectF, doc, pos_in_document, fmt) -> None:
        foreground, background = _pill_colors(fmt)
        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setPen(QPen(foreground, 1))
        painter.setBrush(background)
        painter.drawRoundedRect(rect.adjusted(0.5, 0.5, -0.5, -0.5), _PILL_RADIUS, _PILL_RADIUS)
        painter.setFont(self._font(doc, fmt))
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, fmt.stringProperty(PROP_LABEL))
        painter.restore()


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------

class RulesEditor(QTextEdit):
    """Editor for the rules document.

    Signals
    -------
    contentChanged(str)
        Storage text after a user edit changed it.
    mentionInserted(str, str)
        A mention was inserted: (type, id).
    """

    contentChanged = Signal(str)
    mentionInserted = Signal(str, str)

    def __init__(self, parent: QWidget | None = None, trigger_char: str = "@"):
        super().__init__(parent)
        self.setObjectName("rulesEditor")
        self.setAcceptRichText(False)
        self.setPlaceholderText(
            f"Write the validation rules. Type {trigger_char} to mention a "
            "document or a variable, '# ' for a section title."
        )

        self._trigger = trigger_char
        self._documents: list = []
        self._variables: list = []
        self._lookup = NameLookup()
        self._loading = False
        self._last_emitted = ""

        self._handler = MentionObjectHandler(self)
        self.document().documentLayout().registerHandler(MENTION_OBJECT_TYPE, self._handler)

        self._session = SuggestionSession(on_commit=self._on_mention_committed)
        self._session.cancel()
        self._suggesting = False
        self._trigger_pos = -1
        self._popup = MentionPopup(self.viewport())
        self._popup.session_changed.connect(self._after_session_input)

        self.document().contentsChanged.connect(self._on_contents_changed)
        self.cursorPositionChanged.connect(self._check_trigger_context)

    # ------------------------------------------------------------------
    # Catalogue and content
    # ------------------------------------------------------------------

    @property
    def trigger_char(self) -> str:
        return self._trigger

    @property
    def session(self) -> SuggestionSession:
        return self._session

    @property
    def popup(self) -> MentionPopup:
        return self._popup

    def set_catalog(self, documents: Iterable, variables: Iterable) -> None:
        """Use these entities for labels and suggestions; relabels in place."""
        self._documents = list(documents)
        self._variables = list(variables)
        self._lookup = NameLookup(self._documents, self._variables)
        self._session.set_catalog(self._documents, self._variables)
        self._popup.set_document_icons({d.id: d.icon.value for d in self._documents})
        self.refresh_labels()

    def load_storage_text(self, text: str) -> None:
        self.set_content(parse(text, self._documents, self._variables))

    def set_content(self, content: RichContent) -> None:
        """Replace the document with *content* without emitting contentChanged."""
        self._close_suggestions()
        self._loading = True
        try:
            doc = self.document()
            doc.clear()
            cursor = QTextCursor(doc)
            cursor.beginEditBlock()
            for index, block in enumerate(content.blocks):
                if index:
                    cursor.insertBlock()
                self._insert_block_content(cursor, block)
            cursor.endEditBlock()
            doc.clearUndoRedoStacks()
            doc.setModified(False)
        finally:
            self._loading = False
        self._last_emitted = self.storage_text()
        self.moveCursor(QTextCursor.MoveOperation.End)

    def rich_content(self) -> RichContent:
        blocks = []
        block = self.document().begin()
        while block.isValid():
            kind = BlockKind.HEADER if self._is_header(block) else BlockKind.PARAGRAPH
            rich = Block(kind)
            rich.set_atoms(a for a in self._block_atoms(block) if a is not None)
            blocks.append(rich)
            block = block.next()
        return RichContent(blocks)

    def storage_text(self) -> str:
        return serialize(self.rich_content())

    def refresh_labels(self) -> None:
        """Re-resolve every mention label against the current catalogue."""
        doc = self.document()
        cursor = QTextCursor(doc)
        relabelled = relabel(self.rich_content(), self._documents, self._variables).mentions()
        self._loading = True
        try:
            for position, mention in zip(self._mention_positions(), relabelled):
                cursor.setPosition(position + 1)
                fmt = cursor.charFormat()
                dangling = self._lookup.name(mention.type, mention.id) is None
                if (fmt.stringProperty(PROP_LABEL) == mention.label
                        and fmt.boolProperty(PROP_DANGLING) == dangling):
                    continue
                fmt.setProperty(PROP_LABEL, mention.label)
                fmt.setProperty(PROP_DANGLING, dangling)
                fmt.setToolTip(f"{TYPE_LABELS[mention.type]}: {mention.label}")
                cursor.setPosition(position)
                cursor.setPosition(position + 1, QTextCursor.MoveMode.KeepAnchor)
                cursor.setCharFormat(fmt)
        finally:
            self._loading = False

    def insert_mention(self, item: MentionItem) -> None:
        """Insert *item* at the caret (replacing any selection)."""
        cursor = self.textCursor()
        self._replace_with_mention(cursor.selectionStart(), cursor.selectionEnd(), item)

    # ------------------------------------------------------------------
    # Formats and document walking
    # ------------------------------------------------------------------

    @staticmethod
    def _is_header(block: QTextBlock) -> bool:
        return block.blockFormat().headingLevel() == 1

    @staticmethod
    def _text_format(header: bool) -> QTextCharFormat:
        fmt = QTextCharFormat()
        fmt.setFontWeight(QFont.Weight.Bold if header else QFont.Weight.Normal)
        fmt.setProperty(FONT_SIZE_ADJUSTMENT, HEADER_SIZE_ADJUSTMENT if header else 0)
        return fmt

    def _mention_format(self, mention_type, mention_id: str, label: str,
                        base: QTextCharFormat) -> QTextCharFormat:
        mention_type = MentionType(mention_type)
        fmt = QTextCharFormat(base)
        fmt.setObjectType(MENTION_OBJECT_TYPE)
        fmt.setProperty(PROP_TYPE, mention_type.value)
        fmt.setProperty(PROP_ID, mention_id)
        fmt.setProperty(PROP_LABEL, label)
        fmt.setProperty(PROP_DANGLING, self._lookup.name(mention_type, mention_id) is None)
        fmt.setToolTip(f"{TYPE_LABELS[mention_type]}: {label}")
        return fmt

    def _set_block_kind(self, cursor: QTextCursor, header: bool) -> None:
        block_format = QTextBlockFormat(cursor.blockFormat())
        block_format.setHeadingLevel(1 if header else 0)
        cursor.setBlockFormat(block_format)

    def _restyle_block(self, block: QTextBlock, header: bool) -> None:
        cursor = QTextCursor(block)
        self._set_block_kind(cursor, header)
        cursor.movePosition(QTextCursor.MoveOperation.EndOfBlock, QTextCursor.MoveMode.KeepAnchor)
        cursor.mergeCharFormat(self._text_format(header))

    def _insert_block_content(self, cursor: QTextCursor, block: Block) -> None:
        self._set_block_kind(cursor, block.is_header)
        text_format = self._text_format(block.is_header)
        for node in block.inlines:
            if isinstance(node, TextNode):
                cursor.insertText(node.text, text_format)
            else:
                cursor.insertText(
                    OBJECT_REPLACEMENT,
                    self._mention_format(node.type, node.id, node.label, text_format),
                )
        cursor.setCharFormat(text_format)

    def _block_atoms(self, block: QTextBlock) -> list:
        """Characters and MentionNodes of *block*, one per position.

        Object characters that are not mentions come back as ``None`` so
        that list indices stay aligned with document positions.
        """
        cursor = QTextCursor(self.document())
        base = block.position()
        atoms: list = []
        for offset, char in enumerate(block.text()):
            if char != OBJECT_REPLACEMENT:
                atoms.append(char)
                continue
            cursor.setPosition(base + offset + 1)
            fmt = cursor.charFormat()
            if fmt.objectType() == MENTION_OBJECT_TYPE:
                atoms.append(MentionNode(
                    MentionType(fmt.stringProperty(PROP_TYPE)),
                    fmt.stringProperty(PROP_ID),
                    fmt.stringProperty(PROP_LABEL),
                ))
            else:
                atoms.append(None)
        return atoms

    def _mention_positions(self) -> list[int]:
        """Document positions of every mention, in document order."""
        positions = []
        block = self.document().begin()
        while block.isValid():
            base = block.position()
            positions.extend(
                base + offset
                for offset, atom in enumerate(self._block_atoms(block))
                if isinstance(atom, MentionNode)
            )
            block = block.next()
        return positions

    def _storage_between(self, start: int, end: int) -> str:
        """Storage text for a document range (used for the clipboard)."""
        doc = self.document()
        lines = []
        block = doc.findBlock(start)
        while block.isValid() and block.position() <= end:
            base = block.position()
            atoms = self._block_atoms(block)[max(0, start - base):max(0, end - base)]
            text = "".join(
                a.token if isinstance(a, MentionNode) else a
                for a in atoms if a is not None
            )
            if self._is_header(block) and start <= base:
                text = HEADER_PREFIX + text
            lines.append(text)
            block = block.next()
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------

    def _on_contents_changed(self) -> None:
        if self._loading:
            return
        self._promote_header_prefix()
        text = self.storage_text()
        if text != self._last_emitted:
            self._last_emitted = text
            self.contentChanged.emit(text)

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def keyPressEvent(self, event) -> None:
        if self._suggesting and self._route_to_session(event):
            event.accept()
            return

        key = event.key()
        if key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            self._insert_paragraph_break()
            event.accept()
            return
        if key == Qt.Key.Key_Backspace and self._unset_header_at_start():
            event.accept()
            return

        text = event.text()
        if text and self.currentCharFormat().objectType() == MENTION_OBJECT_TYPE:
            self.setCurrentCharFormat(self._text_format(self._is_header(self.textCursor().block())))

        super().keyPressEvent(event)

        if text == self._trigger:
            self._open_suggestions()

    def _route_to_session(self, event) -> bool:
        """Feed a key to the open session; False lets the editor handle it."""
        text = event.text()
        if text == self._trigger:
            return False

        session = self._session
        mapped = _KEY_MAP.get(event.key())
        if mapped is not None:
            handled = session.handle_key(mapped)
            if mapped is SuggestionKey.BACKSPACE and not handled:
                return False
            self._after_session_input()
            return True

        if session.step is SuggestionStep.SELECTING_ITEM:
            if text and text.isprintable():
                session.type_text(text)
                self._after_session_input()
                return True
            return False

        if text == " ":
            self._close_suggestions()
        return False

    def _insert_paragraph_break(self) -> None:
        cursor = self.textCursor()
        was_header = self._is_header(cursor.block())
        at_start = cursor.positionInBlock() == 0 and not cursor.hasSelection()
        cursor.beginEditBlock()
        cursor.insertBlock()
        if was_header:
            if at_start and cursor.block().length() > 1:
                self._restyle_block(cursor.block().previous(), False)
            else:
                self._restyle_block(cursor.block(), False)
        cursor.endEditBlock()
        self.setTextCursor(cursor)
        self.setCurrentCharFormat(self._text_format(self._is_header(cursor.block())))

    def _unset_header_at_start(self) -> bool:
        cursor = self.textCursor()
        if cursor.hasSelection() or cursor.positionInBlock() != 0:
            return False
        if not self._is_header(cursor.block()):
            return False
        cursor.beginEditBlock()
        self._restyle_block(cursor.block(), False)
        cursor.endEditBlock()
        self.setCurrentCharFormat(self._text_format(False))
        return True

    def _promote_header_prefix(self) -> None:
        """Turn the caret's paragraph into a header once it starts with ``# ``.

        Covers typing the prefix and edits that leave it behind, such as
        deleting the ``a`` of ``#a x``.
        """
        block = self.textCursor().block()
        if self._is_header(block) or not block.text().startswith(HEADER_PREFIX):
            return
        self._loading = True
        try:
            cursor = QTextCursor(block)
            cursor.beginEditBlock()
            cursor.setPosition(block.position() + len(HEADER_PREFIX), QTextCursor.MoveMode.KeepAnchor)
            cursor.removeSelectedText()
            self._restyle_block(cursor.block(), True)
            cursor.endEditBlock()
        finally:
            self._loading = False
        self.setCurrentCharFormat(self._text_format(True))

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def is_suggesting(self) -> bool:
        return self._suggesting

    def _open_suggestions(self) -> None:
        self._trigger_pos = self.textCursor().position() - 1
        self._session.restart()
        self._suggesting = True
        rect = self.cursorRect()
        self._popup.show_for(self._session, rect.left(), rect.bottom() + 4)

    def _close_suggestions(self) -> None:
        self._suggesting = False
        self._trigger_pos = -1
        self._session.cancel()
        self._popup.hide()

    def _after_session_input(self) -> None:
        if self._session.is_active:
            self._popup.refresh()
        else:
            self._close_suggestions()
        self.setFocus()

    def _check_trigger_context(self) -> None:
        """Close the picker once the caret leaves the trigger's context."""
        if not self._suggesting or self._loading:
            return
        doc = self.document()
        cursor = self.textCursor()
        if (cursor.position() <= self._trigger_pos
                or doc.characterAt(self._trigger_pos) != self._trigger
                or doc.findBlock(self._trigger_pos).blockNumber() != cursor.blockNumber()):
            self._close_suggestions()

    def _on_mention_committed(self, item: MentionItem) -> None:
        start = self._trigger_pos
        end = max(self.textCursor().position(), start + 1)
        self._suggesting = False
        self._popup.hide()
        self._replace_with_mention(start, end, item)
        self._trigger_pos = -1

    def _replace_with_mention(self, start: int, end: int, item: MentionItem) -> None:
        """Replace ``[start, end)`` with the mention and exactly one space.

        The block is rebuilt from ``codec.insert_mention`` so the editor and
        the storage model agree on where the mention and its space land.
        """
        block = self.document().findBlock(start)
        base = block.position()
        end = max(start, min(end, base + block.length() - 1))
        atoms = self._block_atoms(block)

        def atom_offset(position: int) -> int:
            return sum(1 for a in atoms[:position - base] if a is not None)

        kind = BlockKind.HEADER if self._is_header(block) else BlockKind.PARAGRAPH
        rich = Block(kind)
        rich.set_atoms(a for a in atoms if a is not None)
        content = RichContent([rich])
        caret = insert_mention(content, 0, atom_offset(start), atom_offset(end), item)

        cursor = QTextCursor(block)
        cursor.beginEditBlock()
        cursor.movePosition(QTextCursor.MoveOperation.EndOfBlock, QTextCursor.MoveMode.KeepAnchor)
        cursor.removeSelectedText()
        self._insert_block_content(cursor, content.blocks[caret.block])
        cursor.endEditBlock()

        cursor.setPosition(base + caret.offset)
        self.setTextCursor(cursor)
        self.setCurrentCharFormat(self._text_format(rich.is_header))
        self.mentionInserted.emit(MentionType(item.type).value, item.id)
        logger.debug("Inserted mention %s:%s", MentionType(item.type).value, item.id)

    # ------------------------------------------------------------------
    # Clipboard
    # ------------------------------------------------------------------

    def createMimeDataFromSelection(self) -> QMimeData:
        cursor = self.textCursor()
        mime = QMimeData()
        mime.setText(self._storage_between(cursor.selectionStart(), cursor.selectionEnd()))
        return mime

    def insertFromMimeData(self, source: QMimeData) -> None:
        if not source.hasText():
            return
        self.insert_storage_text(source.text())

    def insert_storage_text(self, text: str) -> None:
        """Insert storage-format text at the caret, mentions included."""
        content = parse(text.replace("\r\n", "\n"), self._documents, self._variables)
        cursor = self.textCursor()
        cursor.beginEditBlock()
        cursor.removeSelectedText()
        for index, block in enumerate(content.blocks):
            if index:
                cursor.insertBlock()
                self._insert_block_content(cursor, block)
            else:
                header = self._is_header(cursor.block())
                if block.is_header and not header and cursor.block().length() == 1:
                    header = True
                first = Block(BlockKind.HEADER if header else BlockKind.PARAGRAPH, block.inlines)
                self._insert_block_content(cursor, first)
        cursor.endEditBlock()
        self.setTextCursor(cursor)
