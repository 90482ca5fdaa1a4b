import django.db.models.deletion
import django.utils.timezone
import uuid
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ("CREATED", "Created"),
    ("ASSIGNED", "Driver Assigned"),
    ("PICKED_UP", "Picked Up"),
    ("IN_TRANSIT", "In Transit"),
    ("OUT_FOR_DELIVERY", "Out for Delivery"),
    ("DELIVERED", "Delivered"),
    ("CANCELLED", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("authentication", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Shipment",
            fields=[
                ("id",            models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tracking_code", models.CharField(editable=False, max_length=20, unique=True)),
                ("status",        models.CharField(choices=STATUS_CHOICES, default="CREATED", max_length=16)),
                ("goods_description",      models.TextField()),
                ("origin_address",         models.CharField(max_length=255)),
                ("destination_address",    models.CharField(max_length=255)),
                ("pickup_date",            models.DateField(blank=True, null=True)),
                ("expected_delivery_date", models.DateField(blank=True, null=True)),
                ("created_at",    models.DateTimeField(auto_now_add=True)),
                ("updated_at",    models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("delivered_at",  models.DateTimeField(blank=True, null=True)),
                ("supplier", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="supplied_shipments", to=settings.AUTH_USER_MODEL,
                )),
                ("consumer", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="ordered_shipments", to=settings.AUTH_USER_MODEL,
                )),
                ("driver", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="driven_shipments", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="StatusHistoryEntry",
            fields=[
                ("id",          models.BigAutoField(auto_created=True, primary_key=True, serialize=False)),
                ("from_status", models.CharField(blank=True, max_length=16)),
                ("to_status",   models.CharField(choices=STATUS_CHOICES, max_length=16)),
                ("latitude",    models.FloatField(blank=True, null=True)),
                ("longitude",   models.FloatField(blank=True, null=True)),
                ("note",        models.CharField(blank=True, max_length=255)),
                ("occurred_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("shipment", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="history", to="shipments.shipment",
                )),
                ("actor", models.ForeignKey(
                    null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="+", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"ordering": ["occurred_at", "id"], "verbose_name_plural": "status history"},
        ),
        migrations.AddIndex(
            model_name="shipment",
            index=models.Index(fields=["status", "-updated_at"], name="shipment_status_updated_idx"),
        ),
        migrations.AddIndex(
            model_name="shipment",
            index=models.Index(fields=["supplier", "status"], name="shipment_supplier_status_idx"),
        ),
        migrations.AddIndex(
            model_name="shipment",
            index=models.Index(fields=["driver", "status"], name="shipment_driver_status_idx"),
        ),
        migrations.AddIndex(
            model_name="shipment",
            index=models.Index(fields=["consumer"], name="shipment_consumer_idx"),
        ),
        migrations.AddConstraint(
            model_name="shipment",
            constraint=models.CheckConstraint(
                condition=models.Q(("driver__isnull", False), ("status__in", ["CREATED", "CANCELLED"]), _connector="OR"),
                name="shipment_driver_set_once_assigned",
            ),
        ),
        migrations.AddIndex(
            model_name="statushistoryentry",
            index=models.Index(fields=["shipment", "occurred_at"], name="history_shipment_time_idx"),
        ),
    ]
