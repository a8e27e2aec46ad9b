"""Password reset email bodies (HTML + plain text)."""
from dataclasses import dataclass
from html import escape

_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { text-align: center; padding: 20px 0; border-bottom: 2px solid #238636; }
    .logo { font-size: 24px; font-weight: bold; color: #238636; }
    .content { padding: 30px 0; }
    .button { display: inline-block; background-color: #238636; color: white;
              padding: 12px 24px; text-decoration: none; border-radius: 6px; }
    .notice { background-color: #fff3cd; border: 1px solid #ffeaa7; border-radius: 4px;
              padding: 15px; margin: 20px 0; }
    .success { background-color: #d4edda; border: 1px solid #c3e6cb; border-radius: 4px;
               padding: 15px; margin: 20px 0; color: #155724; }
    .footer { text-align: center; padding: 20px 0; border-top: 1px solid #eee;
              font-size: 14px; color: #666; }
"""


@dataclass
class EmailMessage:
    subject: str
    html: str
    text: str


def _page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{title} - Note.Lab</title>
    <style>{_STYLE}</style>
</head>
<body>
    <div class="header">
        <div class="logo">Note.Lab</div>
        <p>Developer-focused note-taking platform</p>
    </div>
    <div class="content">
{body}
    </div>
    <div class="footer">
        <p>You received this email because of activity on your Note.Lab account.</p>
    </div>
</body>
</html>"""


def password_reset_email(user_name: str, reset_url: str) -> EmailMessage:
    name = escape(user_name)
    url = escape(reset_url, quote=True)
    html = _page("Reset Your Password", f"""
        <h2>Hello {name},</h2>
        <p>We received a request to reset the password for your Note.Lab account.
           If you didn't make this request, you can safely ignore this email.</p>
        <p><a class="button" href="{url}">Reset Password</a></p>
        <p>Or copy this link into your browser:<br>{url}</p>
        <div class="notice"><strong>Security notice:</strong> this link expires in 1 hour.
           After that, request a new reset link.</div>
        <p>Best regards,<br>The Note.Lab Team</p>""")

    text = (
        "Reset Your Note.Lab Password\n\n"
        f"Hello {user_name},\n\n"
        "We received a request to reset the password for your Note.Lab account. "
        "If you didn't make this request, you can safely ignore this email.\n\n"
        f"To reset your password, visit this link:\n{reset_url}\n\n"
        "Security notice: this link expires in 1 hour.\n\n"
        "Best regards,\nThe Note.Lab Team\n"
    )
    return EmailMessage(subject="Reset Your Note.Lab Password", html=html, text=text)


def password_reset_success_email(user_name: str) -> EmailMessage:
    name = escape(user_name)
    html = _page("Password Reset Successful", f"""
        <h2>Hello {name},</h2>
        <div class="success"><strong>Your password has been successfully reset.</strong></div>
        <p>You can now sign in with your new password. All other sessions were signed out.</p>
        <p>If you didn't reset your password, contact support immediately as your
           account may have been compromised.</p>
        <p>Best regards,<br>The Note.Lab Team</p>""")

    text = (
        "Your Note.Lab Password Has Been Reset\n\n"
        f"Hello {user_name},\n\n"
        "Your password has been successfully reset. You can now sign in with your new password.\n\n"
        "If you didn't reset your password, contact support immediately as your "
        "account may have been compromised.\n\n"
        "Best regards,\nThe Note.Lab Team\n"
    )
    return EmailMessage(subject="Your Note.Lab Password Has Been Reset", html=html, text=text)
