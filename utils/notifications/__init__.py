"""
Notifications
==============
Deadline and release reminder e-mails.
"""

from .contract_email import ContractNotificationEmail

__all__ = ['ContractNotificationEmail']
