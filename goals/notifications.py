# goals/notifications.py
import json
import random
import requests
from django.core.mail import send_mail
from django.core.serializers.json import DjangoJSONEncoder
from django.conf import settings
import logging
from django.utils import timezone

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT = 5

# Tips for when the team goal was NOT met
TIPS_NOT_MET = [
    "New week, new opportunity to hit the board!",
    "Look back at last week's quotes that didn't close. Who is worth a follow-up call this week?",
    "Mondays set the pace. Try to get two projects on the board before lunch.",
    "Pair up with whoever topped the leaderboard and ask what worked for them.",
    "Small projects count too. A railing is a project just like a deck.",
    "Check which project types were quiet last week. Is there a customer who might need one?",
    "Every location counts. A strong week in one city can carry the team.",
    "We all have slow weeks. Don't worry, it's normal. This one is a fresh start.",
]

# Tips for when the team goal WAS met
TIPS_MET = [
    "Goal met! Keep up the great work.",
    "Well done, team. 😊",
    "Another week on target. Momentum is building.",
    "Congratulations on hitting the weekly goal!",
    "Bravo! The board is full.",
    "Excellent. Consistency pays off.",
    "Great job! Can we beat it next week?",
    "Cheers to everyone who put a project on the board!",
]


def get_random_tip(goal_met):
    """
    Get a random motivational tip.

    Args:
        goal_met: True if the week's goal was met, False if not

    Returns:
        str: Random tip message
    """
    if goal_met:
        return random.choice(TIPS_MET)
    return random.choice(TIPS_NOT_MET)


def create_email_content(record):
    """
    Subject and body of the weekly summary for a WeeklyRecord dict.
    """
    completed = record.get('completed', 0)
    target = record.get('target', 0)
    goal_met = bool(target) and completed >= target

    subject = f"Sales Board Weekly Summary: {record.get('week_display')}"
    message_lines = [
        f"Week of {record.get('week_display')}",
        f"Projects completed: {completed} of {target}.",
    ]

    if goal_met:
        message_lines.append("The team met its weekly goal.")
    else:
        message_lines.append(f"The team finished {max(target - completed, 0)} short of the weekly goal.")

    top_name = record.get('top_salesperson_name') or "N/A"
    if top_name != "N/A":
        message_lines.append(
            f"Top salesperson: {top_name} with {record.get('top_salesperson_projects', 0)} projects."
        )

    message_lines.append(f"\n{get_random_tip(goal_met)}")
    return subject, "\n".join(message_lines)


def send_weekly_summary(record):
    """
    Email the weekly summary to WEEKLY_SUMMARY_RECIPIENTS.
    Returns detailed status; never raises.

    Returns:
        dict: {
            'success': bool,
            'error_message': str or None,
            'subject': str,
            'body': str,
            'timestamp': str (ISO format)
        }
    """
    timestamp = timezone.now()
    result = {
        'success': False,
        'error_message': None,
        'subject': None,
        'body': None,
        'timestamp': timestamp.isoformat()
    }

    recipients = getattr(settings, 'WEEKLY_SUMMARY_RECIPIENTS', [])
    if not recipients:
        result['error_message'] = "No weekly summary recipients configured"
        logger.info(result['error_message'])
        return result

    try:
        subject, message_body = create_email_content(record)
    except (AttributeError, TypeError) as e:
        result['error_message'] = f"Content creation error: {str(e)}"
        logger.error(f"Failed to create weekly summary for {record!r}: {result['error_message']}")
        return result

    result['subject'] = subject
    result['body'] = message_body

    from_email = getattr(settings, 'DEFAULT_FROM_EMAIL', 'salesboard@localhost')
    try:
        send_mail(
            subject=subject,
            message=message_body,
            from_email=from_email,
            recipient_list=recipients,
            fail_silently=False,
        )
        result['success'] = True
        logger.info(f"Weekly summary for {record.get('week_display')} sent to {len(recipients)} recipient(s)")
    except Exception as email_error:
        result['error_message'] = f"SMTP error: {str(email_error)}"
        logger.warning(f"Weekly summary email failed: {result['error_message']}")

    return result


def post_board_event(event):
    """
    Forward a board event to CELEBRATION_WEBHOOK_URL, if one is configured.

    Celebrations are fire-and-forget: failures are logged and reported in the
    returned status, never raised.
    """
    result = {'success': False, 'error_message': None, 'status_code': None}

    url = getattr(settings, 'CELEBRATION_WEBHOOK_URL', '')
    if not url:
        return result

    try:
        response = requests.post(
            url,
            data=json.dumps(event, cls=DjangoJSONEncoder),
            headers={'Content-Type': 'application/json'},
            timeout=WEBHOOK_TIMEOUT,
        )
        result['status_code'] = response.status_code
        response.raise_for_status()
        result['success'] = True
        logger.debug(f"Posted {event.get('type')} to celebration webhook")
    except requests.RequestException as e:
        result['error_message'] = str(e)
        logger.warning(f"Celebration webhook failed for {event.get('type')}: {e}")

    return result
