import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("shipments", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="GpsFix",
            fields=[
                ("id",          models.BigAutoField(auto_created=True, primary_key=True, serialize=False)),
                ("latitude",    models.FloatField()),
                ("longitude",   models.FloatField()),
                ("heading",     models.FloatField(blank=True, null=True)),
                ("speed",       models.FloatField(blank=True, null=True)),
                ("accuracy",    models.FloatField(blank=True, null=True)),
                ("recorded_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("received_at", models.DateTimeField(auto_now_add=True)),
                ("shipment", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="fixes", to="shipments.shipment",
                )),
                ("driver", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="gps_fixes", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={"ordering": ["recorded_at", "id"], "verbose_name": "GPS fix"},
        ),
        migrations.CreateModel(
            name="LatestFix",
            fields=[
                ("shipment", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, primary_key=True,
                    related_name="latest_fix", serialize=False, to="shipments.shipment",
                )),
                ("recorded_at", models.DateTimeField()),
                ("fix", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="+", to="tracking.gpsfix",
                )),
            ],
        ),
        migrations.AddIndex(
            model_name="gpsfix",
            index=models.Index(fields=["shipment", "-recorded_at", "-id"], name="gpsfix_shipment_recent_idx"),
        ),
    ]
