from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Achievement',
            fields=[
                ('rule_id', models.CharField(max_length=50, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('unlocked_at', models.DateTimeField(auto_now_add=True)),
                ('stats', models.JSONField(blank=True, default=dict, help_text='Stats snapshot at unlock time')),
            ],
            options={
                'ordering': ['unlocked_at'],
            },
        ),
        migrations.CreateModel(
            name='PersonalBest',
            fields=[
                ('salesperson_id', models.CharField(max_length=50, primary_key=True, serialize=False)),
                ('salesperson_name', models.CharField(max_length=100)),
                ('weekly_best', models.PositiveIntegerField(default=0)),
                ('achieved_date', models.DateTimeField(blank=True, null=True)),
                ('best_week_start', models.DateField(blank=True, null=True)),
            ],
            options={
                'ordering': ['-weekly_best', 'salesperson_name'],
            },
        ),
        migrations.CreateModel(
            name='WeeklyRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('week_display', models.CharField(max_length=50)),
                ('week_start_date', models.DateField()),
                ('week_end_date', models.DateField(db_index=True)),
                ('completed', models.PositiveIntegerField(default=0)),
                ('target', models.PositiveIntegerField()),
                ('top_salesperson_name', models.CharField(default='N/A', max_length=100)),
                ('top_salesperson_projects', models.PositiveIntegerField(default=0)),
                ('logged_at', models.DateTimeField(auto_now_add=True)),
                ('manually_edited', models.BooleanField(default=False)),
            ],
            options={
                'ordering': ['-week_end_date', '-logged_at'],
            },
        ),
    ]
