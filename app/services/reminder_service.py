"""
Task Reminder Service - evening email to students with pending tasks today.

Triggered by an external cron (POST /api/plans/cron/task-reminder).
Without SMTP settings the email is logged instead of sent (dev mode).
"""

import logging
import smtplib
from datetime import date
from email.mime.text import MIMEText
from typing import Optional

from app.core.config import get_settings
from app.services import plan_service

logger = logging.getLogger(__name__)

settings = get_settings()


def send_email(to_email: str, subject: str, body: str) -> None:
    sender = settings.smtp_from or settings.smtp_user or "no-reply@example.com"

    # Dev fallback -> log instead of sending
    if not settings.smtp_host or not settings.smtp_user or not settings.smtp_password:
        logger.warning("[DEV EMAIL] To: %s | Subject: %s\n%s", to_email, subject, body)
        return

    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to_email

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
        smtp.starttls()
        smtp.login(settings.smtp_user, settings.smtp_password)
        smtp.sendmail(sender, [to_email], msg.as_string())


def reminder_message(name: str, target_name: str, task_count: int) -> tuple:
    plural = "s" if task_count > 1 else ""
    subject = f"{task_count} Task{plural} Pending Today - Don't Break Your Streak!"
    body = (
        f"Hey {name},\n\n"
        f"You have {task_count} task{plural} pending today for your {target_name} preparation plan.\n\n"
        "Complete them to keep your daily streak, climb the leaderboard and unlock badges.\n\n"
        f"Open your plan: {settings.app_url}/dashboard/career-tracks/my-plan\n"
    )
    return subject, body


def send_task_reminders(today: Optional[date] = None) -> dict:
    """
    Email every student with incomplete tasks dated today.

    Returns:
        {"sent": int, "failed": int, "total": int}
    """
    rows = plan_service.find_pending_reminders(today)
    sent = 0
    failed = 0

    for row in rows:
        subject, body = reminder_message(row["name"], row["target_name"], row["pending_count"])
        try:
            send_email(row["email"], subject, body)
            sent += 1
        except (smtplib.SMTPException, OSError) as e:
            failed += 1
            logger.error("Reminder to %s failed: %s", row["email"], e)

    logger.info("Task reminders: %d sent, %d failed", sent, failed)
    return {"sent": sent, "failed": failed, "total": len(rows)}
