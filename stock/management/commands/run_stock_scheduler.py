import signal
import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from stock.services.alert_service import StockAlertService

logger = logging.getLogger(__name__)


def check_low_stock():
    logger.info("Executing low stock check")
    try:
        result = StockAlertService.check_low_stock()
    except Exception as e:
        logger.error(f"Low stock check failed: {e}")
        return

    if result['alerted']:
        logger.warning(f"Low stock alerts sent for: {', '.join(result['alerted'])}")


class Command(BaseCommand):
    help = 'Run the periodic low stock alert scheduler'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.scheduler = None

    def add_arguments(self, parser):
        parser.add_argument(
            '--interval',
            type=int,
            default=settings.LOW_STOCK_CHECK_MINUTES,
            help=f'Minutes between low stock checks (default: {settings.LOW_STOCK_CHECK_MINUTES})'
        )

    def handle(self, *args, **options):
        interval = options['interval']

        self.stdout.write(self.style.SUCCESS('Starting stock scheduler...'))
        self.stdout.write(f'Current time: {timezone.now()}')
        self.stdout.write(f'Low stock check: every {interval} minutes')

        self.scheduler = BlockingScheduler()
        self.scheduler.add_job(
            check_low_stock,
            IntervalTrigger(minutes=interval),
            id='check_low_stock',
            name='Check stock levels against thresholds',
            next_run_time=timezone.now(),
            replace_existing=True
        )

        signal.signal(signal.SIGTERM, self._signal_handler)

        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            self.scheduler.shutdown(wait=False)

        self.stdout.write(self.style.SUCCESS('Stock scheduler stopped.'))

    def _signal_handler(self, signum, frame):
        self.stdout.write('\nReceived shutdown signal, stopping...')
        self.scheduler.shutdown(wait=False)
