import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('clients', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Sprint',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField()),
                ('duration', models.PositiveIntegerField(default=2, help_text='Duration in weeks')),
                ('status', models.CharField(choices=[('planning', 'Planning'), ('active', 'Active'), ('review', 'Review'), ('complete', 'Complete'), ('cancelled', 'Cancelled')], default='planning', max_length=20)),
                ('total_capacity', models.PositiveIntegerField(default=0, help_text='Capacity in hours')),
                ('committed_points', models.PositiveIntegerField(default=0)),
                ('completed_points', models.PositiveIntegerField(default=0)),
                ('goals', models.JSONField(blank=True, default=list)),
                ('velocity_target', models.PositiveIntegerField(blank=True, null=True)),
                ('actual_velocity', models.PositiveIntegerField(blank=True, null=True)),
                ('slug', models.CharField(blank=True, db_index=True, max_length=40, null=True)),
                ('slug_key', models.CharField(blank=True, max_length=10, null=True)),
                ('slug_number', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sprints', to='clients.client')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_sprints', to=settings.AUTH_USER_MODEL)),
                ('department', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sprints', to='clients.department')),
                ('sprint_master', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='mastered_sprints', to=settings.AUTH_USER_MODEL)),
                ('team_members', models.ManyToManyField(blank=True, related_name='team_sprints', to=settings.AUTH_USER_MODEL)),
                ('updated_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='updated_sprints', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'sprints',
                'ordering': ['-start_date'],
                'indexes': [models.Index(fields=['department', 'status'], name='sprints_dept_status_idx'), models.Index(fields=['start_date'], name='sprints_start_idx')],
            },
        ),
    ]
