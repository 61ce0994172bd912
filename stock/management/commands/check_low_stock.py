from django.core.management.base import BaseCommand

from stock.services.alert_service import StockAlertService


class Command(BaseCommand):
    help = 'Notify managers about ledger entries at or below their minimum threshold'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Send alerts even if one was sent recently'
        )

    def handle(self, *args, **options):
        result = StockAlertService.check_low_stock(force=options['force'])

        below = result['below_threshold']
        alerted = result['alerted']

        if not below:
            self.stdout.write(self.style.SUCCESS('All stock levels are above their thresholds'))
            return

        for entry in below:
            self.stdout.write(
                f"{entry['item_kind']}: {entry['on_hand_quantity']} on hand "
                f"(minimum {entry['minimum_threshold']})"
            )

        if alerted:
            self.stdout.write(self.style.WARNING(f"Alerts sent for: {', '.join(alerted)}"))
        else:
            self.stdout.write('Alerts already sent recently, nothing new to notify')
