"""
Email utility functions
"""
from flask_mail import Mail, Message
from flask import current_app

mail = Mail()

def mail_configured():
    """True when an SMTP server and account are configured."""
    return bool(current_app.config.get('MAIL_SERVER') and current_app.config.get('MAIL_USERNAME'))

def send_email(subject, recipients, body, html=None):
    """
    Send an email
    
    Args:
        subject: Email subject
        recipients: List of recipient email addresses
        body: Plain text body
        html: HTML body (optional)
    """
    msg = Message(
        subject=subject,
        recipients=recipients,
        body=body,
        html=html
    )
    mail.send(msg)

def send_download_link_email(email, download_url, expires_at):
    """
    Send the one-time diagnosis result download link.
    
    Args:
        email: Recipient email address
        download_url: Full URL to the download endpoint with token
        expires_at: Link expiry (datetime, UTC)
    """
    if not mail_configured():
        raise RuntimeError("MAIL_SERVER not configured. Please set MAIL_SERVER and MAIL_USERNAME environment variables.")

    expires_text = expires_at.strftime('%Y-%m-%d %H:%M UTC')
    subject = "【タスカル】診断結果のダウンロードリンク"
    body = f"""
タスカルをご利用いただきありがとうございます。

以下のリンクから診断結果をダウンロードできます。
{download_url}

このリンクは一度のみ有効で、{expires_text} まで利用できます。

お心当たりのない場合は、このメールを破棄してください。

タスカル サポート
"""
    html = _download_link_email_html(download_url, expires_text)
    try:
        send_email(subject, [email], body, html=html)
    except Exception as e:
        current_app.logger.error(f"SMTP error sending download link email: {str(e)}", exc_info=True)
        raise


def _download_link_email_html(download_url: str, expires_text: str) -> str:
    """Clean HTML template for the download link email."""
    return f"""
    <!DOCTYPE html>
    <html lang="ja">
    <head><meta charset="UTF-8"></head>
    <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; color: #333; background: #f5f5f5; padding: 24px;">
      <div style="max-width: 560px; margin: 0 auto; background: #fff; border-radius: 8px; padding: 32px;">
        <h1 style="color: #2563eb; font-size: 20px;">診断結果のダウンロード</h1>
        <p>タスカルをご利用いただきありがとうございます。</p>
        <p>以下のボタンから診断結果をダウンロードできます。</p>
        <p style="text-align: center; margin: 32px 0;">
          <a href="{download_url}" style="background: #2563eb; color: #fff; padding: 12px 24px; border-radius: 6px; text-decoration: none;">診断結果をダウンロード</a>
        </p>
        <p style="font-size: 13px; color: #6c757d;">このリンクは一度のみ有効で、{expires_text} まで利用できます。</p>
      </div>
    </body>
    </html>
    """
