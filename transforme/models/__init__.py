"""ORM models exposed for easy imports."""

from .api_usage import ApiUsage, CronRun
from .app_log import AppLog
from .banking import BankAccount, BankTransaction, SiteSetting
from .class_group import ClassGroup
from .class_log import ClassLog, ClassLogPhoto
from .donor import Donation, Donor, DonorOtp
from .event import Event
from .invoice import Invoice
from .line_item import InvoiceLineItem, InvoiceMiscItem
from .orphanage import Orphanage
from .transparency_report import TransparencyReport
from .user import User

__all__ = [
    "ApiUsage",
    "AppLog",
    "BankAccount",
    "BankTransaction",
    "ClassGroup",
    "ClassLog",
    "ClassLogPhoto",
    "CronRun",
    "Donation",
    "Donor",
    "DonorOtp",
    "Event",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceMiscItem",
    "Orphanage",
    "SiteSetting",
    "TransparencyReport",
    "User",
]
