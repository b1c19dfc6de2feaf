"""
Payments app: Stripe billing for the premium membership.

This app handles:
- Checkout Sessions for the monthly premium plan and for card updates
- Immediate and period-end cancellation of the plan
- Stripe webhook intake, idempotent processing and maintenance tasks

Related apps:
    - accounts: AccountService keeps the member's role in step with billing

Usage:
    from payments.services import MembershipService

    result = MembershipService.start_upgrade(user, request.build_absolute_uri())
"""
