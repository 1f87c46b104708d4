from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orgs', '0001_initial'),
        ('grants', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Proposal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(blank=True, default='', max_length=500)),
                ('status', models.CharField(blank=True, default='draft', max_length=32)),
                ('quality_score', models.IntegerField(blank=True, null=True)),
                ('quality_review', models.JSONField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('grant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='proposals', to='grants.grant')),
                ('org', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='proposals', to='orgs.organization')),
            ],
            options={
                'ordering': ['-updated_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ProposalSection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(blank=True, default='', max_length=500)),
                ('content', models.JSONField(blank=True, null=True)),
                ('header1', models.JSONField(blank=True, null=True)),
                ('header2', models.JSONField(blank=True, null=True)),
                ('tabulation', models.JSONField(blank=True, null=True)),
                ('sort_order', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('proposal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sections', to='proposals.proposal')),
            ],
            options={
                'ordering': ['proposal_id', 'sort_order', 'id'],
                'indexes': [models.Index(fields=['proposal', 'sort_order'], name='proposal_section_order_idx')],
            },
        ),
    ]
