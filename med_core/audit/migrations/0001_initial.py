import uuid

import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("timestamp", models.DateTimeField(auto_now_add=True, db_index=True)),
                (
                    "action",
                    models.CharField(
                        choices=[("CREATE", "Create"), ("UPDATE", "Update"), ("DELETE", "Delete")],
                        db_index=True,
                        max_length=16,
                    ),
                ),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                ("user_name", models.CharField(max_length=255)),
                ("entity", models.CharField(db_index=True, max_length=64)),
                ("entity_id", models.CharField(db_index=True, max_length=64)),
                ("entity_name", models.CharField(blank=True, max_length=255)),
                (
                    "details",
                    models.JSONField(default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
            ],
            options={
                "db_table": "audit_log_entry",
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["entity", "entity_id"], name="audit_entity_idx"),
                    models.Index(fields=["user_id", "timestamp"], name="audit_user_ts_idx"),
                ],
            },
        ),
    ]
