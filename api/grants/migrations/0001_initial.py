from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('orgs', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Grant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=500)),
                ('funder_name', models.CharField(blank=True, default='', max_length=300)),
                ('organization', models.CharField(blank=True, default='', max_length=300)),
                ('description', models.TextField(blank=True, default='')),
                ('amount', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('deadline', models.DateTimeField(blank=True, null=True)),
                ('stage', models.CharField(choices=[('discovery', 'Discovery'), ('screening', 'Screening'), ('drafting', 'Drafting'), ('submission', 'Submission'), ('awarded', 'Awarded'), ('reporting', 'Reporting'), ('closed', 'Closed')], default='discovery', max_length=16)),
                ('source', models.CharField(blank=True, default='', max_length=100)),
                ('source_id', models.CharField(blank=True, default='', max_length=200)),
                ('source_url', models.URLField(blank=True, default='', max_length=800)),
                ('categories', models.JSONField(blank=True, null=True)),
                ('eligibility', models.JSONField(blank=True, null=True)),
                ('screening_score', models.IntegerField(blank=True, null=True)),
                ('screening_notes', models.TextField(blank=True, default='')),
                ('concerns', models.JSONField(blank=True, null=True)),
                ('recommendations', models.JSONField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('org', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grants', to='orgs.organization')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['org', 'stage'], name='grants_org_stage_idx'),
                    models.Index(fields=['org', 'deadline'], name='grants_org_deadline_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Funder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=300)),
                ('ein', models.CharField(blank=True, default='', max_length=32)),
                ('giving_patterns', models.JSONField(blank=True, null=True)),
                ('priorities', models.JSONField(blank=True, null=True)),
                ('propublica_data', models.JSONField(blank=True, null=True)),
                ('strategy_brief', models.TextField(blank=True, default='')),
                ('submission_preferences', models.JSONField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('org', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='funders', to='orgs.organization')),
            ],
        ),
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=200)),
                ('details', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('grant', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='activities', to='grants.grant')),
                ('org', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activities', to='orgs.organization')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
