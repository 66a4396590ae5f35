import uuid
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Resource',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('resource_type', models.CharField(choices=[('VEHICLE', 'Vehicle'), ('EQUIPMENT', 'Equipment'), ('SPACE', 'Space'), ('OTHER', 'Other')], default='OTHER', max_length=20)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('INACTIVE', 'Inactive'), ('MAINTENANCE', 'Under Maintenance')], default='ACTIVE', max_length=20)),
                ('pricing_model', models.CharField(choices=[('FLAT_FEE', 'Flat Fee'), ('PER_UNIT', 'Per Unit')], default='FLAT_FEE', max_length=20)),
                ('pricing_unit', models.CharField(blank=True, choices=[('HOUR', 'Hour'), ('DAY', 'Day'), ('MILE', 'Mile'), ('KILOMETER', 'Kilometer'), ('TRIP', 'Trip')], help_text='Only for per-unit pricing', max_length=20, null=True)),
                ('rate', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('requires_approval', models.BooleanField(default=False)),
                ('max_reservation_days', models.PositiveIntegerField(blank=True, help_text='0 = single day only, empty = unlimited', null=True)),
                ('advance_booking_days', models.PositiveIntegerField(blank=True, help_text='How many days ahead a booking may start (empty = no limit)', null=True)),
                ('created_by_id', models.UUIDField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['status', 'resource_type'], name='resources_r_status_5ee244_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(models.Q(('pricing_model', 'PER_UNIT'), ('pricing_unit__isnull', False)), models.Q(('pricing_model', 'FLAT_FEE'), ('pricing_unit__isnull', True)), _connector='OR'), name='resource_pricing_unit_matches_model')],
            },
        ),
    ]
