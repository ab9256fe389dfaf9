from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.fleet.models import DumpsterInventory, DumpsterStatus, DumpsterType
from apps.identity.models import User, UserRole
from apps.organizations.models import (
    Organization,
    OrganizationSettings,
    OrganizationStatus,
    ServiceArea,
)

DEMO_PASSWORD = "admin123"

DUMPSTER_TYPES = [
    {
        'name': "10 Yard Dumpster",
        'size_yards': 10,
        'capacity_description': "Perfect for small projects like garage cleanouts or minor renovations",
        'daily_rate': Decimal('45.00'),
        'weekly_rate': Decimal('299.00'),
        'weight_limit_tons': Decimal('2.00'),
        'units': 10,
    },
    {
        'name': "20 Yard Dumpster",
        'size_yards': 20,
        'capacity_description': "Ideal for medium projects such as kitchen remodels or roof replacements",
        'daily_rate': Decimal('65.00'),
        'weekly_rate': Decimal('425.00'),
        'weight_limit_tons': Decimal('4.00'),
        'units': 15,
    },
    {
        'name': "30 Yard Dumpster",
        'size_yards': 30,
        'capacity_description': "Great for large projects including whole-home cleanouts or new construction",
        'daily_rate': Decimal('85.00'),
        'weekly_rate': Decimal('575.00'),
        'weight_limit_tons': Decimal('6.00'),
        'units': 8,
    },
    {
        'name': "40 Yard Dumpster",
        'size_yards': 40,
        'capacity_description': "Best for major commercial projects or large-scale demolitions",
        'daily_rate': Decimal('105.00'),
        'weekly_rate': Decimal('725.00'),
        'weight_limit_tons': Decimal('8.00'),
        'units': 8,
    },
]

# Kansas City ZIP codes and delivery fees
SERVICE_AREAS = [
    ("64101", "75.00"), ("64102", "75.00"), ("64105", "75.00"), ("64106", "75.00"),
    ("64108", "75.00"), ("64109", "85.00"), ("64110", "85.00"), ("64111", "75.00"),
    ("64112", "85.00"), ("64113", "85.00"), ("64114", "90.00"), ("64115", "90.00"),
    ("64116", "95.00"),
]


class Command(BaseCommand):
    help = 'Seeds the database with a demo tenant. Safe to run repeatedly.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clean',
            action='store_true',
            help='Delete the demo tenant before seeding',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clean']:
            self.stdout.write(self.style.WARNING('Removing demo tenant...'))
            Organization.objects.filter(slug="1-call-junk-removal").delete()

        org = self._get_or_create_org()
        self._seed_settings(org)
        self._seed_users(org)
        self._seed_fleet(org)
        self._seed_service_areas(org)

        self.stdout.write(self.style.SUCCESS('Seeding completed successfully.'))

    def _get_or_create_org(self):
        org, created = Organization.objects.get_or_create(
            slug="1-call-junk-removal",
            defaults={
                'name': "1 Call Junk Removal",
                'business_name': "1 Call Junk Removal LLC",
                'email': "info@1calljunkremoval.com",
                'phone': "(816) 661-1759",
                'address': "123 Main St",
                'city': "Kansas City",
                'state': "MO",
                'zip': "64101",
                'service_area_radius': 30,
                'tax_rate': Decimal('0.0875'),
                'status': OrganizationStatus.ACTIVE,
                'website': "https://www.1calljunkremoval.com",
                'primary_color': "211 85% 42%",
                'secondary_color': "211 85% 42%",
            }
        )
        if created:
            self.stdout.write(f'Created Organization: {org.name}')
        else:
            self.stdout.write(f'Using existing Organization: {org.name}')
        return org

    def _seed_settings(self, org):
        _, created = OrganizationSettings.objects.get_or_create(
            organization=org,
            defaults={
                'minimum_rental_days': 7,
                'turnaround_hours': 24,
                'lead_time_hours': 48,
                'cancellation_hours_notice': 48,
                'cancellation_fee_percent': Decimal('25'),
            }
        )
        if created:
            self.stdout.write(' - Created booking settings')

    def _seed_users(self, org):
        self.stdout.write('Seeding Users...')

        if not User.objects.filter(email="admin@dumpsterpro.com", organization__isnull=True).exists():
            User.objects.create_superuser(
                email="admin@dumpsterpro.com",
                password=DEMO_PASSWORD,
                first_name="Super",
                last_name="Admin",
                phone="(555) 000-0000",
                email_verified=True,
            )
            self.stdout.write(f' - Created super admin admin@dumpsterpro.com ({DEMO_PASSWORD})')

        if not User.objects.filter(email="owner@1calljunkremoval.com", organization=org).exists():
            User.objects.create_user(
                email="owner@1calljunkremoval.com",
                password=DEMO_PASSWORD,
                first_name="John",
                last_name="Doe",
                phone="(816) 661-1759",
                role=UserRole.ORG_OWNER,
                organization=org,
                email_verified=True,
            )
            self.stdout.write(f' - Created owner owner@1calljunkremoval.com ({DEMO_PASSWORD})')

    def _seed_fleet(self, org):
        self.stdout.write('Seeding Fleet...')

        for type_data in DUMPSTER_TYPES:
            fields = {key: value for key, value in type_data.items() if key != 'units'}
            dumpster_type, created = DumpsterType.objects.get_or_create(
                organization=org,
                size_yards=fields.pop('size_yards'),
                defaults={**fields, 'overage_fee_per_ton': Decimal('75.00')},
            )
            if created:
                self.stdout.write(f' - Created {dumpster_type.name}')

            for i in range(1, type_data['units'] + 1):
                DumpsterInventory.objects.get_or_create(
                    organization=org,
                    unit_number=f"{dumpster_type.size_yards}Y-{i:03d}",
                    defaults={
                        'dumpster_type': dumpster_type,
                        'status': DumpsterStatus.AVAILABLE,
                    }
                )

        self.stdout.write(f' - {DumpsterInventory.objects.filter(organization=org).count()} inventory units')

    def _seed_service_areas(self, org):
        self.stdout.write('Seeding Service Areas...')
        for zip_code, fee in SERVICE_AREAS:
            ServiceArea.objects.get_or_create(
                organization=org,
                zip_code=zip_code,
                defaults={'delivery_fee': Decimal(fee), 'is_active': True},
            )
        self.stdout.write(f' - {len(SERVICE_AREAS)} ZIP codes')
