"""
Excel processing service for attendee import and gift list export
"""

import io
import zipfile
from typing import List, Dict, Tuple
import logging

import pandas as pd
from email_validator import validate_email, EmailNotValidError
from sqlalchemy.orm import Session

from gifttable.core.exceptions import ValidationFailed
from gifttable.models import Attendee, Event
from gifttable.schemas.attendee import AttendeeCreate
from gifttable.services.event_service import EventService, invitation_url
from gifttable.services.repositories import AttendeeRepo, GiftItemRepo

logger = logging.getLogger(__name__)

class ExcelService:
    """Service for handling Excel operations"""

    REQUIRED_COLUMNS = ['name', 'email']

    @staticmethod
    def create_template() -> bytes:
        """Create Excel template with required columns"""
        df = pd.DataFrame(
            [
                ['Sample Attendee 1', 'attendee1@example.com'],
                ['Sample Attendee 2', 'attendee2@example.com'],
            ],
            columns=['Name', 'Email'],
        )

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name='Attendees')

        return buffer.getvalue()

    @staticmethod
    def column_mapping(df: pd.DataFrame) -> Dict[str, str]:
        """Map normalized column names to the sheet's own headers"""
        mapping = {}
        for col in df.columns:
            col_lower = str(col).lower().strip()
            if 'mail' in col_lower:
                mapping.setdefault('email', col)
            elif 'name' in col_lower:
                mapping.setdefault('name', col)
        return mapping

    @staticmethod
    def validate_excel_structure(df: pd.DataFrame) -> Tuple[bool, List[str]]:
        """Validate Excel file structure"""
        errors = []

        mapping = ExcelService.column_mapping(df)
        missing_columns = [col for col in ExcelService.REQUIRED_COLUMNS if col not in mapping]

        if missing_columns:
            errors.append(f"Missing required columns: {', '.join(missing_columns)}")

        return len(errors) == 0, errors

    @staticmethod
    def parse_attendees(df: pd.DataFrame, existing_emails: set = frozenset()) -> Tuple[List[AttendeeCreate], List[str]]:
        """Validate rows and turn them into attendee payloads.

        Row numbers in messages match the spreadsheet (header is row 1).
        """
        mapping = ExcelService.column_mapping(df)
        attendees = []
        errors = []
        seen = set()

        for index, row in df.iterrows():
            row_no = index + 2
            raw_name = row[mapping['name']]
            raw_email = row[mapping['email']]

            name = '' if pd.isna(raw_name) else str(raw_name).strip()
            email = '' if pd.isna(raw_email) else str(raw_email).strip()

            # Skip empty rows
            if not name and not email:
                continue
            if not name:
                errors.append(f"Row {row_no}: name is required")
                continue

            try:
                email = validate_email(email, check_deliverability=False).normalized
            except EmailNotValidError:
                errors.append(f"Row {row_no}: invalid email '{email}'")
                continue

            key = email.lower()
            if key in seen:
                errors.append(f"Row {row_no}: duplicate email '{email}' in file")
                continue
            if key in existing_emails:
                errors.append(f"Row {row_no}: '{email}' is already invited")
                continue
            seen.add(key)
            attendees.append(AttendeeCreate(name=name, email=email))

        return attendees, errors

    @staticmethod
    def import_attendees(file_content: bytes, event_id: int, db: Session) -> List[Attendee]:
        """Add the attendees listed in an uploaded sheet; existing ones are kept"""
        try:
            df = pd.read_excel(io.BytesIO(file_content))
        except (ValueError, OSError, zipfile.BadZipFile) as e:
            raise ValidationFailed("Could not read Excel file", details=[str(e)])

        valid_structure, structure_errors = ExcelService.validate_excel_structure(df)
        if not valid_structure:
            raise ValidationFailed("Excel file validation failed", details=structure_errors)

        attendees, errors = ExcelService.parse_attendees(df, AttendeeRepo.emails_for_event(db, event_id))
        if errors:
            raise ValidationFailed("Excel file validation failed", details=errors)
        if not attendees:
            raise ValidationFailed("Excel file contains no attendees")

        created = EventService.add_attendees(db, event_id, attendees)
        logger.info(f"Imported {len(created)} attendees into event {event_id}")
        return created

    @staticmethod
    def export_event(event: Event, db: Session) -> bytes:
        """Export the gift list with its claims and the attendee links"""
        gifts = [
            {
                'Gift': item.name,
                'Price': float(item.price) if item.price is not None else None,
                'Store URLs': '\n'.join(item.store_urls or []),
                'Selected By': item.claimed_by.name if item.claimed_by else '',
                'Selected At': item.claimed_at.isoformat() if item.claimed_at else '',
            }
            for item in GiftItemRepo.list_for_event(db, event.id)
        ]
        attendees = [
            {
                'Name': attendee.name,
                'Email': attendee.email,
                'Invitation Link': invitation_url(attendee),
            }
            for attendee in AttendeeRepo.list_for_event(db, event.id)
        ]

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            pd.DataFrame(gifts, columns=['Gift', 'Price', 'Store URLs', 'Selected By', 'Selected At']) \
                .to_excel(writer, index=False, sheet_name='Gift List')
            pd.DataFrame(attendees, columns=['Name', 'Email', 'Invitation Link']) \
                .to_excel(writer, index=False, sheet_name='Attendees')

        return buffer.getvalue()
