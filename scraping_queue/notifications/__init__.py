from scraping_queue.notifications.base import BaseProgressNotifier
from scraping_queue.notifications.factory import NotifierFactory
from scraping_queue.notifications.publisher import ProgressPublisher

__all__ = ["BaseProgressNotifier", "NotifierFactory", "ProgressPublisher"]
