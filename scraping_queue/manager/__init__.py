from scraping_queue.manager.queue_manager import QueueManager, build_queue_manager
from scraping_queue.manager.registry import SourceQueue, SourceRegistry

__all__ = ["QueueManager", "SourceQueue", "SourceRegistry", "build_queue_manager"]
