"""Asynchronous confirmation dialog built on ``QMessageBox``."""

from __future__ import annotations

import asyncio
import logging

from PySide6.QtWidgets import QMessageBox, QWidget

from ...editor.ports import ConfirmOptions

__all__ = ["QtConfirmDialog"]

LOGGER = logging.getLogger(__name__)


class QtConfirmDialog:
    """Shows a window-modal message box and resolves once a button is chosen.

    The box is opened non-blocking (``QMessageBox.open``) so the asyncio loop
    driven by qasync keeps running while it is visible.
    """

    def __init__(self, parent: QWidget | None = None) -> None:
        self._parent = parent
        self.active_box: QMessageBox | None = None

    async def confirm(self, options: ConfirmOptions) -> bool:
        box = QMessageBox(self._parent)
        box.setIcon(QMessageBox.Icon.Warning)
        box.setWindowTitle(options.title)
        box.setText(options.message)
        confirm_button = box.addButton(options.confirm_text, QMessageBox.ButtonRole.AcceptRole)
        cancel_button = box.addButton(options.cancel_text, QMessageBox.ButtonRole.RejectRole)
        box.setDefaultButton(cancel_button)

        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()

        def _finished(_result: int) -> None:
            if not future.done():
                future.set_result(box.clickedButton() == confirm_button)

        box.finished.connect(_finished)
        self.active_box = box
        box.open()
        try:
            confirmed = await future
        finally:
            self.active_box = None
            box.deleteLater()
        LOGGER.debug("Confirmation %r answered %s", options.title, confirmed)
        return confirmed
