"""
Email Service for appointment notifications
"""
import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from flask import current_app

logger = logging.getLogger(__name__)

TYPE_LABELS = {
    'consultation': 'Consultation',
    'surgery': 'Surgery',
    'vaccination': 'Vaccination',
    'emergency': 'Emergency',
    'checkup': 'Check-up',
    'dental_cleaning': 'Dental cleaning',
    'sterilization': 'Sterilization',
    'review': 'Review',
}


def send_email(to_email, subject, body_text, body_html=None):
    """
    Generic email sending function

    Args:
        to_email: Recipient email
        subject: Email subject
        body_text: Plain text body
        body_html: HTML body (optional)

    Returns:
        bool: True if sent successfully
    """
    try:
        mail_server = current_app.config.get('MAIL_SERVER')
        mail_port = current_app.config.get('MAIL_PORT')
        mail_use_tls = current_app.config.get('MAIL_USE_TLS')
        mail_username = current_app.config.get('MAIL_USERNAME')
        mail_password = current_app.config.get('MAIL_PASSWORD')
        mail_sender = current_app.config.get('MAIL_DEFAULT_SENDER')
        timeout = current_app.config.get('NOTIFICATION_TIMEOUT_SECONDS', 10)

        if not mail_username or not mail_password:
            logger.warning("Email not configured. Skipping email to %s", to_email)
            return False

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = mail_sender
        msg['To'] = to_email

        msg.attach(MIMEText(body_text, 'plain'))
        if body_html:
            msg.attach(MIMEText(body_html, 'html'))

        with smtplib.SMTP(mail_server, mail_port, timeout=timeout) as server:
            if mail_use_tls:
                server.starttls()
            server.login(mail_username, mail_password)
            server.sendmail(mail_sender, to_email, msg.as_string())

        logger.info(f"Email sent to {to_email}")
        return True

    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def send_appointment_reminder(email, name, appointment):
    """
    Send an appointment reminder to the pet owner

    Args:
        email: Owner's email address
        name: Owner's name for personalization
        appointment: dict with pet_name, appointment_type, date (date), time,
            reason and optional preparation_instructions

    Returns:
        bool: True if email sent successfully
    """
    appointment_date = appointment['date'].strftime('%A, %d %B %Y')
    type_label = TYPE_LABELS.get(appointment['appointment_type'], appointment['appointment_type'])
    instructions = appointment.get('preparation_instructions')
    fasting = appointment.get('fasting_required')

    subject = f"Appointment reminder - {appointment['pet_name']} on {appointment_date} at {appointment['time']}"

    text = f"""
Hello {name},

This is a reminder of your upcoming veterinary appointment:

Pet: {appointment['pet_name']}
Type: {type_label}
Date: {appointment_date}
Time: {appointment['time']}
Reason: {appointment['reason']}
{'Fasting is required before the visit.' if fasting else ''}
{f'Preparation instructions: {instructions}' if instructions else ''}

If you cannot attend, please cancel at least 2 hours in advance.

Best regards,
Veterinary Clinic
    """

    html = f"""
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: #7c3aed; color: white; padding: 20px; text-align: center; border-radius: 5px 5px 0 0; }}
        .content {{ background: #f9f9f9; padding: 30px; border: 1px solid #ddd; }}
        .info {{ background: white; padding: 20px; border-radius: 5px; margin: 20px 0; border-left: 4px solid #7c3aed; }}
        .warning {{ background: #fff3cd; padding: 15px; border-radius: 5px; margin-top: 20px; font-size: 13px; }}
        .footer {{ text-align: center; padding: 20px; color: #666; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Appointment Reminder</h1>
        </div>
        <div class="content">
            <p>Hello {name}, this is a reminder of your upcoming veterinary appointment:</p>
            <div class="info">
                <p><strong>Pet:</strong> {appointment['pet_name']}</p>
                <p><strong>Type:</strong> {type_label}</p>
                <p><strong>Date:</strong> {appointment_date}</p>
                <p><strong>Time:</strong> {appointment['time']}</p>
                <p><strong>Reason:</strong> {appointment['reason']}</p>
            </div>
            {'<div class="warning"><strong>Fasting is required before the visit.</strong></div>' if fasting else ''}
            {f'<div class="warning"><h4>Important instructions:</h4><p>{instructions}</p></div>' if instructions else ''}
        </div>
        <div class="footer">
            <p>If you cannot attend, please cancel at least 2 hours in advance.</p>
        </div>
    </div>
</body>
</html>
    """

    return send_email(email, subject, text, html)
