"""
Email templates for the Student Progress System.

All templates use inline CSS for maximum email client compatibility.

Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

# Color constants
BG_PAGE = "#F4F4F4"
BG_CARD = "#FFFFFF"
ACCENT = "#0056B3"
TEXT_PRIMARY = "#333333"
TEXT_SECONDARY = "#666666"
BORDER = "#DDDDDD"


def _base_layout(content: str, app_name: str = "Student Progress System") -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: Arial, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 32px 16px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 8px; padding: 32px; color: {TEXT_PRIMARY}; line-height: 1.6;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; margin: 0;">
                                This is an automated email from {app_name}. Please do not reply.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def inactivity_reminder(
    display_name: str,
    reminder_count: int,
    dashboard_url: str = "",
) -> tuple[str, str, str]:
    """Reminder for a student with no accepted submission in the last 7 days."""
    name = escape(display_name)
    subject = f"[Student Progress System] Time to get back to problem solving, {display_name}!"

    link_html = ""
    link_text = ""
    if dashboard_url:
        link_html = (
            f'<p style="text-align: center; margin: 24px 0;">'
            f'<a href="{escape(dashboard_url)}" style="color: {ACCENT}; font-weight: 700;">Open your progress dashboard</a>'
            f"</p>"
        )
        link_text = f"\nOpen your progress dashboard: {dashboard_url}\n"

    content = f"""\
<h2 style="color: {ACCENT}; text-align: center; margin-top: 0;">Hello {name},</h2>
<p>We noticed that you haven't had an accepted Codeforces submission in the last 7 days.</p>
<p>Consistency is key to improving your competitive programming skills.
Let's get back to solving some problems and watch your rating climb.</p>
<p style="text-align: center; font-size: 1.1em;">This is reminder number: <strong>{reminder_count}</strong></p>
{link_html}
<p style="text-align: center;">Keep up the great work!</p>"""

    text = f"""\
Hello {display_name},

We noticed that you haven't had an accepted Codeforces submission in the last 7 days.

Consistency is key to improving your competitive programming skills.
Let's get back to solving some problems and watch your rating climb.

This is reminder number: {reminder_count}
{link_text}
Keep up the great work!
"""
    return subject, _base_layout(content), text
