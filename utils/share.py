"""
WhatsApp share link for a placed order, plus a QR code of the same link.
"""

import base64
import io
import re
from urllib.parse import quote

import qrcode


def format_money(amount, symbol="£"):
    return f"{symbol}{float(amount):.2f}"


def build_order_message(order, symbol="£"):
    lines = "\n".join(
        f"- {item.food_item.name} x {item.quantity} ({format_money(item.price, symbol)})"
        for item in order.items
    )
    return (
        f"Here are my order details: Order #{order.id}\n\n"
        f"Items:\n{lines}\n\n"
        f"Total: {format_money(order.total_price, symbol)}\n"
        f"Name: {order.customer_name}\n"
        f"Mobile: {order.customer_mobile}"
    )


def build_whatsapp_url(number, message):
    # wa.me wants the number as digits only, country code included
    digits = re.sub(r"\D", "", number or "")
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


def build_link_qr_png(url, box_size=8):
    """PNG of ``url`` as a QR code, base64 encoded for a data: URI."""
    qr = qrcode.QRCode(box_size=box_size, border=2)
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    return base64.b64encode(bio.getvalue()).decode("utf-8")
