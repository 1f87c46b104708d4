from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orgs', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Narrative',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=300)),
                ('content', models.TextField()),
                ('category', models.CharField(choices=[('mission', 'Mission'), ('impact', 'Impact'), ('methods', 'Methods'), ('evaluation', 'Evaluation'), ('sustainability', 'Sustainability'), ('capacity', 'Capacity'), ('budget_narrative', 'Budget narrative'), ('other', 'Other')], default='other', max_length=32)),
                ('tags', models.JSONField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('org', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='narratives', to='orgs.organization')),
            ],
            options={
                'ordering': ['-updated_at', '-id'],
            },
        ),
    ]
