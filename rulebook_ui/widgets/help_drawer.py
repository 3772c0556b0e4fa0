"""
rulebook_ui/widgets/help_drawer.py -- Side drawer next to the rules editor.

Two tabs: a syntax cheat sheet, and a read-only preview of the saved
rules with mentions resolved to their current names.
"""

from __future__ import annotations

import html
from typing import Iterable

from PySide6.QtWidgets import QTabWidget, QTextBrowser, QWidget

from rulebook.mentions.resolver import scan_content
from rulebook.mentions.tokens import MentionType, extract_header_text, is_header_line
from rulebook_ui.theme.theme import (
    DOCUMENT_BACKGROUND,
    DOCUMENT_COLOR,
    MUTED_COLOR,
    VARIABLE_BACKGROUND,
    VARIABLE_COLOR,
)


def _syntax_html(trigger: str) -> str:
    t = html.escape(trigger)
    return f"""
<h3>Writing rules</h3>
<p>Write one rule per line, in plain language. The validation agent reads
the text as-is.</p>
<h4>Mentions</h4>
<p>Type <b>{t}</b> to reference a document type or a variable:</p>
<ol>
  <li>choose <i>Document</i> or <i>Variable</i> (arrows + Enter),</li>
  <li>type to filter, then Enter or click to insert.</li>
</ol>
<p>Escape or Backspace on an empty filter goes back one step.</p>
<p>Mentions keep pointing at the same entity when it is renamed. A mention
of a deleted entity shows its raw id in grey.</p>
<h4>Sections</h4>
<p>Type <b>#</b> followed by a space at the start of a line to turn it into
a section title. Backspace at the start of a title turns it back into a
paragraph.</p>
<h4>Saving</h4>
<p>Changes are saved automatically one second after you stop typing.
Ctrl+S saves immediately.</p>
"""


def _pill(name: str, mention_type: MentionType, dangling: bool) -> str:
    if dangling:
        color, background = MUTED_COLOR, "#eeeeee"
    elif mention_type is MentionType.VAR:
        color, background = VARIABLE_COLOR, VARIABLE_BACKGROUND
    else:
        color, background = DOCUMENT_COLOR, DOCUMENT_BACKGROUND
    return (
        f'<span style="color: {color}; background-color: {background};">'
        f"&nbsp;{html.escape(name)}&nbsp;</span>"
    )


def render_preview_html(content: str, documents: Iterable = (), variables: Iterable = ()) -> str:
    """HTML rendering of storage text with mentions shown as names."""
    documents = list(documents)
    variables = list(variables)
    out = []
    for line in (content or "").split("\n"):
        header = is_header_line(line)
        text = extract_header_text(line) if header else line
        rendered = "".join(
            _pill(part.mention.name, part.mention.type, part.mention.dangling)
            if part.is_mention else html.escape(part.text)
            for part in scan_content(text, documents, variables)
        )
        if header:
            out.append(f"<h3>{rendered}</h3>")
        else:
            out.append(f"<p>{rendered or '&nbsp;'}</p>")
    return "\n".join(out)


class HelpDrawer(QTabWidget):
    def __init__(self, trigger_char: str = "@", parent: QWidget | None = None):
        super().__init__(parent)
        self.setMinimumWidth(260)

        self._syntax = QTextBrowser()
        self._syntax.setHtml(_syntax_html(trigger_char))
        self.addTab(self._syntax, "Syntax")

        self._preview = QTextBrowser()
        self.addTab(self._preview, "Preview")

    def show_preview(self, content: str, documents: Iterable, variables: Iterable) -> None:
        self._preview.setHtml(render_preview_html(content, documents, variables))

    def preview_text(self) -> str:
        return self._preview.toPlainText()
