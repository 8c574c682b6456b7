"""
Management command to initialize default product categories.
Run with: python manage.py init_default_categories
"""
from django.core.management.base import BaseCommand
from store.models import Category


DEFAULT_CATEGORIES = [
    'Electronics',
    'Fashion',
    'Home & Kitchen',
    'Beauty',
    'Sports',
    'Books',
    'Toys',
    'Groceries',
]


class Command(BaseCommand):
    help = 'Initialize default product categories'

    def add_arguments(self, parser):
        parser.add_argument(
            'names',
            nargs='*',
            help='Category names to create instead of the default list',
        )

    def handle(self, *args, **options):
        names = options['names'] or DEFAULT_CATEGORIES

        created_count = 0
        existing_count = 0

        for name in names:
            name = name.strip()
            if not name:
                continue
            if Category.objects.filter(name__iexact=name).exists():
                existing_count += 1
                self.stdout.write(self.style.WARNING(f'Category already exists: {name}'))
                continue

            Category.objects.create(name=name[:50])
            created_count += 1
            self.stdout.write(self.style.SUCCESS(f'Created category: {name}'))

        self.stdout.write(
            self.style.SUCCESS(
                f'\nDone! Created: {created_count}, Already existed: {existing_count}'
            )
        )
