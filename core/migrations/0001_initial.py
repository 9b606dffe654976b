import django.core.serializers.json
from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='AppSetting',
            fields=[
                ('key', models.CharField(max_length=50, primary_key=True, serialize=False)),
                ('value', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['key'],
            },
        ),
        migrations.CreateModel(
            name='ProjectBackup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('original_id', models.BigIntegerField()),
                ('week_label', models.CharField(max_length=50)),
                ('payload', models.JSONField(default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('backed_up_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-backed_up_at', 'original_id'],
                'unique_together': {('original_id', 'week_label')},
            },
        ),
        migrations.CreateModel(
            name='ProjectEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('salesperson_id', models.CharField(db_index=True, max_length=50)),
                ('salesperson_name', models.CharField(max_length=100)),
                ('salesperson_initials', models.CharField(blank=True, max_length=5)),
                ('project_type_id', models.CharField(max_length=50)),
                ('project_name', models.CharField(max_length=100)),
                ('project_icon', models.CharField(blank=True, max_length=255)),
                ('location', models.CharField(db_index=True, max_length=50)),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('archived', models.BooleanField(db_index=True, default=False)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('backup_label', models.CharField(blank=True, max_length=50)),
                ('backed_up_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'ordering': ['-timestamp', '-id'],
                'indexes': [models.Index(fields=['archived', 'timestamp'], name='core_project_live_ts_idx')],
            },
        ),
    ]
