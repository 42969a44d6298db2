import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Medication",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("patient_id", models.UUIDField(db_index=True)),
                ("organization_id", models.UUIDField(blank=True, db_index=True, null=True)),
                ("name", models.CharField(max_length=255)),
                ("dosage", models.CharField(max_length=128)),
                ("frequency", models.CharField(max_length=128)),
                ("prescribing_doctor", models.CharField(max_length=255)),
                ("end_date", models.DateField(db_index=True)),
                ("inventory", models.PositiveIntegerField(default=0)),
            ],
            options={
                "db_table": "medications_medication",
                "indexes": [
                    models.Index(fields=["patient_id", "end_date"], name="med_patient_end_idx"),
                    models.Index(fields=["organization_id", "end_date"], name="med_org_end_idx"),
                ],
            },
        ),
    ]
