import os
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from twilio.rest import Client
import logging

logger = logging.getLogger(__name__)

# --- Email Configuration ---
SMTP_SERVER = os.getenv("SMTP_SERVER")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
EMAIL_SENDER = os.getenv("EMAIL_SENDER")

# --- Twilio Configuration ---
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")

BRAND = "SourceHub"


def send_email(to_email: str, subject: str, body_html: str):
    """Sends an email using SMTP."""
    if not all([SMTP_SERVER, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, EMAIL_SENDER]):
        logger.error("SMTP settings are not fully configured. Cannot send email.")
        return False

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = EMAIL_SENDER
    message["To"] = to_email
    message.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP(SMTP_SERVER, SMTP_PORT) as server:
            server.starttls()
            server.login(SMTP_USER, SMTP_PASSWORD)
            server.sendmail(EMAIL_SENDER, to_email, message.as_string())
        logger.info(f"Email sent successfully to {to_email}")
        return True
    except Exception as e:
        logger.warning(f"Failed to send email to {to_email}: {e}")
        return False


def send_sms(to_phone_number: str, body: str):
    """Sends an SMS using Twilio."""
    if not all([TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER]):
        logger.error("Twilio settings are not fully configured. Cannot send SMS.")
        return False

    try:
        client = Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
        message = client.messages.create(
            body=body,
            from_=TWILIO_PHONE_NUMBER,
            to=to_phone_number
        )
        logger.info(f"SMS sent successfully to {to_phone_number}, SID: {message.sid}")
        return True
    except Exception as e:
        logger.warning(f"Failed to send SMS to {to_phone_number}: {e}")
        return False


def _wrap(title: str, intro: str, details: str, outro: str = "") -> str:
    return f"""
    <html>
    <body>
        <h2>{title}</h2>
        <p>Hello,</p>
        <p>{intro}</p>

        <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">
            {details}
        </div>

        <p>{outro}</p>
        <p>Best regards,<br>{BRAND} Team</p>
    </body>
    </html>
    """


# Email Templates
def get_new_bid_email(bid_data: dict, request_data: dict) -> tuple[str, str]:
    """Tells the buyer a supplier bid on their request"""
    subject = f"New Bid on {request_data['request_number']} - {request_data['product_name']}"

    details = f"""
            <h3>Bid Details:</h3>
            <p><strong>Supplier:</strong> {bid_data.get('supplier_name') or 'N/A'}</p>
            <p><strong>Product:</strong> {bid_data.get('product_name') or 'N/A'}</p>
            <p><strong>Quantity:</strong> {bid_data['quantity']}</p>
            <p><strong>Bid Price:</strong> ₹{bid_data['bid_price']} per unit</p>
            <p><strong>Delivery Time:</strong> {bid_data['delivery_time']} days</p>
            <p><strong>Message:</strong> {bid_data.get('message') or '-'}</p>
    """

    body = _wrap(
        "You received a new bid!",
        f"A supplier has bid on your sourcing request \"{request_data['product_name']}\".",
        details,
        "Review and accept the best offer from your requests page."
    )
    return subject, body


def get_bid_decision_email(bid_data: dict, request_data: dict, accepted: bool) -> tuple[str, str]:
    """Tells the supplier whether their bid was accepted or rejected"""
    decision = "Accepted" if accepted else "Rejected"
    subject = f"Bid {decision} - {request_data['product_name']}"

    details = f"""
            <h3>Bid Summary:</h3>
            <p><strong>Request:</strong> {request_data['request_number']}</p>
            <p><strong>Quantity:</strong> {bid_data['quantity']}</p>
            <p><strong>Bid Price:</strong> ₹{bid_data['bid_price']} per unit</p>
            <p><strong>Status:</strong> {decision}</p>
    """

    if accepted:
        intro = "Congratulations! The buyer has accepted your bid."
        outro = "The buyer will place the order from their cart shortly."
    else:
        intro = "The buyer has chosen another offer for this request."
        outro = "Keep an eye on new sourcing requests in your category."

    return subject, _wrap(f"Bid {decision}", intro, details, outro)


def get_order_placed_email(order_data: dict, is_buyer: bool = True) -> tuple[str, str]:
    """Generate order confirmation email template"""
    action = "placed" if is_buyer else "received"

    subject = f"Order {action.title()} - {order_data['order_number']}"

    lines = "".join(
        f"<p>{item['product_name']} x {item['quantity']} @ ₹{item['unit_price']} = ₹{item['total_price']}</p>"
        for item in order_data['products']
    )
    details = f"""
            <h3>Order Details:</h3>
            <p><strong>Order Number:</strong> {order_data['order_number']}</p>
            {lines}
            <p><strong>Total Amount:</strong> ₹{order_data['total_amount']}</p>
            <p><strong>Estimated Delivery:</strong> {order_data.get('estimated_delivery') or 'N/A'}</p>
    """

    return subject, _wrap(
        f"Order {action.title()}!",
        f"An order has been {action} with the following details:",
        details,
        "Thank you for using our platform!"
    )


# SMS Templates
def get_new_bid_sms(bid_data: dict, request_data: dict) -> str:
    return f"New bid on {request_data['request_number']}: ₹{bid_data['bid_price']}/unit for {bid_data['quantity']} units, delivery in {bid_data['delivery_time']} days. - {BRAND}"


def get_bid_decision_sms(bid_data: dict, request_data: dict, accepted: bool) -> str:
    decision = "accepted" if accepted else "rejected"
    return f"Your bid of ₹{bid_data['bid_price']}/unit on {request_data['request_number']} was {decision}. - {BRAND}"


def get_order_placed_sms(order_data: dict, is_buyer: bool = True) -> str:
    """Generate order confirmation SMS template"""
    action = "placed" if is_buyer else "received"
    return f"Order {action}! {order_data['order_number']} - ₹{order_data['total_amount']}. Status: {order_data['status']}. - {BRAND}"
