from django.core.management.base import BaseCommand

from orders.models import OrderStatus
from orders.services.order_lifecycle import ensure_default_statuses


class Command(BaseCommand):
    help = "Create the default order status graph (PENDING/PREPARING/COMPLETED/CANCELLED)"

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding order statuses..."))

        statuses = ensure_default_statuses()

        for status in statuses:
            targets = ", ".join(
                status.can_transition_to.order_by("sort_order").values_list("code", flat=True)
            )
            marker = " (default)" if status.is_default else ""
            self.stdout.write(f"  {status.code}{marker} -> {targets or 'terminal'}")

        total = OrderStatus.objects.count()
        self.stdout.write(
            self.style.SUCCESS(f"Order statuses ready ({total} configured).")
        )
