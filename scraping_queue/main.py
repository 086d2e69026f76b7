import signal
import threading
from types import FrameType

from scraping_queue.config.settings import Settings
from scraping_queue.logging.logger import Log
from scraping_queue.manager.queue_manager import build_queue_manager


def main() -> None:
    """Entry point: build the queue manager -> start source workers -> wait for a signal."""
    settings = Settings()
    Log.configure(settings.log_level)

    manager = build_queue_manager(settings)
    stop = threading.Event()

    def _handle_signal(signum: int, _frame: FrameType | None) -> None:
        Log.info(f"Received signal {signum}, shutting down")
        stop.set()

    signal.signal(signal.SIGTERM, _handle_signal)
    try:
        manager.initialize(settings.sources)
        stop.wait()
    except KeyboardInterrupt:
        Log.info("Interrupted, shutting down")
    finally:
        manager.cleanup()


if __name__ == "__main__":
    main()
