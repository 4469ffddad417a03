"""
QR code generation service
"""

import io
import qrcode

from gifttable.models import Attendee
from gifttable.services.event_service import invitation_url

class QRService:
    """Service for generating QR codes of attendee invitation links"""

    @staticmethod
    def generate_qr(url: str, format: str = 'PNG') -> bytes:
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(url)
        qr.make(fit=True)

        # Create QR code image
        img = qr.make_image(fill_color="black", back_color="white")

        # Convert to bytes
        buffer = io.BytesIO()
        img.save(buffer, format=format)

        return buffer.getvalue()

    @staticmethod
    def generate_invitation_qr(attendee: Attendee) -> bytes:
        """QR code pointing at the attendee's personal gift list link"""
        return QRService.generate_qr(invitation_url(attendee))
