from decimal import Decimal

from django.core.management.base import BaseCommand

from customers.models import Customer
from orders.services.order_lifecycle import ensure_default_statuses
from products.models import Product


class Command(BaseCommand):
    help = "Seed demo products (mixed tax rates), customers and the order status graph"

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding catalog..."))

        # -------------------------------
        # ORDER STATUSES
        # -------------------------------
        ensure_default_statuses()

        # -------------------------------
        # PRODUCTS
        # -------------------------------
        products_data = [
            ("YERBA-1KG", "Yerba mate 1kg", "100.00", "21.00", 40),
            ("ALFAJOR-12", "Alfajores x12", "50.00", "10.50", 60),
            ("DDL-400", "Dulce de leche 400g", "35.90", "21.00", 25),
            ("LIBRO-REC", "Recetario criollo", "120.00", "0.00", 10),
        ]

        created_products = 0
        for sku, name, price, tax_rate, stock in products_data:
            _, created = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "price": Decimal(price),
                    "tax_rate": Decimal(tax_rate),
                    "stock": stock,
                },
            )
            created_products += int(created)

        # -------------------------------
        # CUSTOMERS
        # -------------------------------
        customers_data = [
            ("Ana Perez", "ana@example.com", "+54 11 5555-0001"),
            ("Luis Gomez", "luis@example.com", ""),
        ]

        created_customers = 0
        for name, email, phone in customers_data:
            _, created = Customer.objects.get_or_create(
                email=email, defaults={"name": name, "phone": phone}
            )
            created_customers += int(created)

        self.stdout.write(
            self.style.SUCCESS(
                f"Catalog seeded: {created_products} new products, "
                f"{created_customers} new customers."
            )
        )
