import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('clients', '0001_initial'),
        ('projects', '0001_initial'),
        ('sprints', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=500)),
                ('description', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('todo', 'To Do'), ('in_progress', 'In Progress'), ('review', 'Review'), ('done', 'Done'), ('archived', 'Archived')], default='todo', max_length=20)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=10)),
                ('size', models.CharField(blank=True, choices=[('XS', 'XS'), ('S', 'S'), ('M', 'M'), ('L', 'L'), ('XL', 'XL')], max_length=2, null=True)),
                ('size_hours', models.PositiveIntegerField(blank=True, null=True)),
                ('story_points', models.PositiveIntegerField(blank=True, null=True)),
                ('task_type', models.CharField(blank=True, choices=[('deliverable', 'Deliverable'), ('bug', 'Bug'), ('feedback', 'Feedback'), ('personal', 'Personal')], max_length=20, null=True)),
                ('personal_order_index', models.IntegerField(blank=True, null=True)),
                ('project_order', models.IntegerField(blank=True, null=True)),
                ('backlog_order', models.IntegerField(blank=True, null=True)),
                ('sprint_order', models.IntegerField(blank=True, null=True)),
                ('due_date', models.DateTimeField(blank=True, null=True)),
                ('start_date', models.DateTimeField(blank=True, null=True)),
                ('completed_date', models.DateTimeField(blank=True, null=True)),
                ('estimated_hours', models.PositiveIntegerField(blank=True, null=True)),
                ('actual_hours', models.PositiveIntegerField(blank=True, null=True)),
                ('labels', models.JSONField(blank=True, default=list)),
                ('category', models.CharField(choices=[('feature', 'Feature'), ('bug', 'Bug'), ('improvement', 'Improvement'), ('research', 'Research'), ('documentation', 'Documentation'), ('maintenance', 'Maintenance')], default='feature', max_length=20)),
                ('visibility', models.CharField(choices=[('private', 'Private'), ('team', 'Team'), ('department', 'Department'), ('client', 'Client')], default='department', max_length=20)),
                ('slug', models.CharField(blank=True, db_index=True, max_length=40, null=True)),
                ('slug_key', models.CharField(blank=True, max_length=10, null=True)),
                ('slug_number', models.PositiveIntegerField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assignee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_tasks', to=settings.AUTH_USER_MODEL)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to='clients.client')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_tasks', to=settings.AUTH_USER_MODEL)),
                ('department', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to='clients.department')),
                ('parent_task', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='subtasks', to='tasks.task')),
                ('project', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to='projects.project')),
                ('reporter', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reported_tasks', to=settings.AUTH_USER_MODEL)),
                ('sprint', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tasks', to='sprints.sprint')),
                ('updated_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='updated_tasks', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'tasks',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='tasks_status_idx'),
                    models.Index(fields=['assignee', 'status'], name='tasks_assignee_status_idx'),
                    models.Index(fields=['department', 'status'], name='tasks_dept_status_idx'),
                    models.Index(fields=['department', 'backlog_order'], name='tasks_backlog_order_idx'),
                    models.Index(fields=['sprint', 'sprint_order'], name='tasks_sprint_order_idx'),
                    models.Index(fields=['assignee', 'personal_order_index'], name='tasks_personal_order_idx'),
                ],
            },
        ),
    ]
