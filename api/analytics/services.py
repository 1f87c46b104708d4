"""Pipeline metrics computed over one organization's rows."""
import math
from collections import Counter, OrderedDict
from decimal import Decimal
from typing import Dict, List

from django.db.models import Min, Sum

from awards.models import Award
from grants.models import ActivityLog, Grant
from submissions.models import Submission


def percent(part: int, whole: int) -> int:
    """Rounded percentage, halves rounding up; 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return int(math.floor(100 * part / whole + 0.5))


def win_rate(org) -> int:
    return percent(Award.objects.filter(org=org).count(), Submission.objects.filter(org=org).count())


def pipeline_value(org) -> Decimal:
    """Sum of grant amounts in the active stages (discovery through submission)."""
    total = Grant.objects.filter(org=org, stage__in=Grant.ACTIVE_STAGES).aggregate(total=Sum('amount'))['total']
    return total or Decimal('0')


def total_award_amount(org) -> Decimal:
    return Award.objects.filter(org=org).aggregate(total=Sum('amount'))['total'] or Decimal('0')


def avg_days_to_submission(org) -> int:
    """Mean whole days from grant creation to its first submission, rounded."""
    rows = (
        Grant.objects.filter(org=org, submissions__submitted_at__isnull=False)
        .annotate(first_submitted=Min('submissions__submitted_at'))
        .values_list('created_at', 'first_submitted')
    )
    # whole days, truncated toward zero
    days = [int((submitted - created).total_seconds() / 86400) for created, submitted in rows]
    if not days:
        return 0
    return int(math.floor(sum(days) / len(days) + 0.5))


def summary(org) -> Dict[str, object]:
    submissions = Submission.objects.filter(org=org).count()
    awards = Award.objects.filter(org=org).count()
    return {
        'winRate': percent(awards, submissions),
        'pipelineValue': pipeline_value(org),
        'totalSubmissions': submissions,
        'totalAwards': awards,
        'totalAwardAmount': total_award_amount(org),
        'avgTimeToSubmission': avg_days_to_submission(org),
    }


def funder_success(org) -> List[Dict[str, object]]:
    """Awards and submissions grouped by the grant's funder name."""
    stats: 'OrderedDict[str, Dict[str, int]]' = OrderedDict()
    for name in Award.objects.filter(org=org).values_list('grant__funder_name', flat=True):
        stats.setdefault(name or 'Unknown', {'awards': 0, 'submissions': 0})['awards'] += 1
    for name in Submission.objects.filter(org=org).values_list('grant__funder_name', flat=True):
        stats.setdefault(name or 'Unknown', {'awards': 0, 'submissions': 0})['submissions'] += 1
    return [
        {
            'funderName': name,
            'awards': s['awards'],
            'submissions': s['submissions'],
            'successRate': percent(s['awards'], s['submissions']),
        }
        for name, s in stats.items()
    ]


def dashboard(org) -> Dict[str, object]:
    grants = Grant.objects.filter(org=org)
    stage_counts = Counter(grants.values_list('stage', flat=True))
    activities = ActivityLog.objects.filter(org=org).values('id', 'grant_id', 'action', 'details', 'created_at')[:10]
    return {
        'stageCounts': {stage: stage_counts.get(stage, 0) for stage, _label in Grant.STAGE_CHOICES},
        'totalGrants': sum(stage_counts.values()),
        'pipelineValue': grants.aggregate(total=Sum('amount'))['total'] or Decimal('0'),
        'winRate': win_rate(org),
        'recentActivity': list(activities),
    }
