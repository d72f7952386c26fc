import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, Future
from typing import Callable, Optional, Any

from vimarsha.exceptions import DeviceAccessError, VimarshaError

logger = logging.getLogger(__name__)


class SafeThreadExecutor:
    """Thread executor with safe cleanup"""

    def __init__(self, max_workers: int = 2):
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="qr-decode")
        self._shutdown = False

    def submit(self, fn: Callable, *args, **kwargs) -> Optional[Future]:
        """Submit task to executor"""
        if self._shutdown:
            return None

        try:
            return self.executor.submit(fn, *args, **kwargs)
        except RuntimeError as e:
            logger.error(f"Error submitting task: {e}")
            return None

    def shutdown(self, wait: bool = False) -> None:
        """Shutdown executor"""
        self._shutdown = True
        self.executor.shutdown(wait=wait)


class ScanChannel:
    """
    Single-producer channel from a decoder worker to the resolution flow.

    The worker publishes exactly one result (a payload string or an error);
    the consumer waits for it with a timeout. Closing the channel stops it
    from accepting anything else, and ``with`` closes it on success as well
    as on teardown.
    """

    def __init__(self):
        self._queue = queue.Queue(maxsize=1)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def publish(self, payload: Any) -> bool:
        """Hand a decoded payload (or an exception) to the consumer"""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(payload)
            return True
        except queue.Full:
            logger.debug("Scan channel already holds a result, dropping extra payload")
            return False

    def fail(self, error: BaseException) -> bool:
        return self.publish(error)

    def receive(self, timeout: float) -> str:
        """
        Wait for the next payload.

        Raises:
            DeviceAccessError: nothing arrived within ``timeout`` or the
                channel was closed
            VimarshaError: the error the worker published
        """
        if self.closed:
            raise DeviceAccessError()
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            logger.warning(f"No scan result within {timeout:.1f}s")
            raise DeviceAccessError()
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self._closed.set()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions


def run_decoder(channel: ScanChannel, decoder: Callable[[bytes], str], data: bytes) -> None:
    """Worker body: decode ``data`` and publish the text or the failure"""
    try:
        channel.publish(decoder(data))
    except VimarshaError as e:
        channel.fail(e)
    except Exception as e:
        logger.error(f"QR decoder crashed: {e}", exc_info=True)
        channel.fail(DeviceAccessError())
