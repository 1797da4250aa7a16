"""Domain layer for ledgerlink."""

from ledgerlink.domain.owner import OwnerService
from ledgerlink.domain.vendor_alias import VendorAliasService
from ledgerlink.domain.duplicates import DuplicateDetector
from ledgerlink.domain.statement_import import StatementImportService
from ledgerlink.domain.invoice import InvoiceService
from ledgerlink.domain.cc_matching import CCBankMatchingService
from ledgerlink.domain.line_item_matching import LineItemMatchingService
from ledgerlink.domain.settings import MatchingSettings, DuplicatePolicy

__all__ = [
    "OwnerService",
    "VendorAliasService",
    "DuplicateDetector",
    "StatementImportService",
    "InvoiceService",
    "CCBankMatchingService",
    "LineItemMatchingService",
    "MatchingSettings",
    "DuplicatePolicy",
]
