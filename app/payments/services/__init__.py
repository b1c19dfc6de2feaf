"""
Billing services.

- MembershipService: premium upgrade, card update and cancellation

Usage:
    from payments.services import MembershipService

    result = MembershipService.cancel_membership(request.user)
    if result.success:
        report = result.data
"""

from payments.services.membership_service import (
    CancellationOutcome,
    CancellationReport,
    MembershipService,
)

__all__ = [
    "CancellationOutcome",
    "CancellationReport",
    "MembershipService",
]
