"""Clipboard delivery via pyperclip."""

from __future__ import annotations

import pyperclip


class PyperclipClipboard:
    """ClipboardSink backed by the system clipboard."""

    def copy(self, text: str) -> None:
        pyperclip.copy(text)
