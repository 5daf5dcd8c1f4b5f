"""
DocInsight - Async Workers
QThread hosting the asyncio event loop that runs the WorkflowController.
Keeps every backend call and every state mutation off the GUI thread:
  - GUI code submits intents (callables taking the controller)
  - State snapshots and intent outcomes come back as queued Qt signals
"""

import asyncio
import inspect
import logging
import threading
from typing import Any, Callable, Optional

from PyQt6.QtCore import QThread, pyqtSignal, QObject

from core.controller import WorkflowController
from core.errors import Outcome

logger = logging.getLogger(__name__)

Intent = Callable[[WorkflowController], Any]


class ControllerWorker(QThread):
    """
    Worker thread owning the controller's event loop.
    The controller is built on the loop thread so its HTTP client binds there.
    """
    state_changed = pyqtSignal(object)         # WorkflowState snapshot
    outcome_ready = pyqtSignal(str, object)    # (intent name, Outcome)
    error_occurred = pyqtSignal(str)           # Unexpected failure message

    def __init__(self, controller_factory: Callable[[], WorkflowController],
                 parent: QObject = None) -> None:
        super().__init__(parent)
        self._factory = controller_factory
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ready = threading.Event()
        self.controller: Optional[WorkflowController] = None

    def run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        try:
            self.controller = self._factory()
            self.controller.subscribe(self.state_changed.emit)
            self._ready.set()
            logger.info("Controller loop started.")
            loop.run_forever()
        except Exception as e:
            logger.error(f"ControllerWorker error: {e}")
            self.error_occurred.emit(str(e))
        finally:
            if self.controller is not None:
                loop.run_until_complete(self.controller.aclose())
            loop.close()
            logger.info("Controller loop stopped.")

    def submit(self, name: str, intent: Intent) -> None:
        """Schedule `intent(controller)` on the loop; its Outcome is emitted as outcome_ready."""
        if not self._ready.wait(timeout=5.0) or self._loop is None:
            self.error_occurred.emit("Controller is not running.")
            return
        asyncio.run_coroutine_threadsafe(self._dispatch(name, intent), self._loop)

    async def _dispatch(self, name: str, intent: Intent) -> None:
        try:
            result = intent(self.controller)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Intent '{name}' failed: {e}")
            self.error_occurred.emit(str(e))
            return

        if isinstance(result, Outcome) and not result.ok and not result.stale:
            logger.info(f"Intent '{name}' rejected: {result.message}")
        self.outcome_ready.emit(name, result)

    def stop(self) -> None:
        """Stop the loop and wait for the thread to release its resources."""
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        self.wait()
