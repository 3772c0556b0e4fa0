"""
Validation Rules Console -- PySide6 desktop application.

Package layout:
    panels/     Main screens (rules editor, catalogue)
    widgets/    Reusable custom widgets (editor, popup, dialogs, indicators)
    services/   Event bus, store worker threads, autosave
    theme/      qt-material theme and mention colours
"""
