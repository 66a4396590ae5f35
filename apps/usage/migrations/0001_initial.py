import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='UsageLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('reservation_id', models.UUIDField(unique=True)),
                ('user_id', models.UUIDField(db_index=True)),
                ('resource_id', models.UUIDField(db_index=True)),
                ('status', models.CharField(choices=[('CHECKED_OUT', 'In Use'), ('COMPLETED', 'Completed'), ('VERIFIED', 'Verified'), ('DISPUTED', 'Disputed')], default='CHECKED_OUT', max_length=20)),
                ('checked_out_at', models.DateTimeField()),
                ('start_reading', models.DecimalField(blank=True, decimal_places=2, help_text='Odometer/meter reading at check-out', max_digits=12, null=True)),
                ('start_photo_path', models.CharField(blank=True, max_length=500)),
                ('start_notes', models.TextField(blank=True)),
                ('checked_in_at', models.DateTimeField(blank=True, null=True)),
                ('end_reading', models.DecimalField(blank=True, decimal_places=2, help_text='Odometer/meter reading at check-in', max_digits=12, null=True)),
                ('end_photo_path', models.CharField(blank=True, max_length=500)),
                ('end_notes', models.TextField(blank=True)),
                ('duration_hours', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('distance_units', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('calculated_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('verified_by_id', models.UUIDField(blank=True, null=True)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('admin_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-checked_out_at'],
                'indexes': [
                    models.Index(fields=['user_id', 'status'], name='usage_usage_user_id_f85ac1_idx'),
                    models.Index(fields=['resource_id', 'checked_out_at'], name='usage_usage_resourc_4f96df_idx'),
                ],
            },
        ),
    ]
