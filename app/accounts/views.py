"""
Member pages under /user/.

Views only orchestrate: they read the logged-in member, call
AccountService / MembershipService and turn ServiceResult outcomes into
templates, flash messages and redirects. Provider errors are never shown
to the member as-is.
"""

import logging

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import logout
from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.http import Http404
from django.shortcuts import redirect, render
from django.views.decorators.http import require_GET, require_POST

from accounts.forms import UserEditForm
from accounts.models import Role
from accounts.services import AccountService
from core.exceptions import NotFoundError, ValidationError
from payments.exceptions import RETRYABLE_ERROR_CODES
from payments.services import CancellationOutcome, MembershipService

logger = logging.getLogger(__name__)

CARD_UPDATED_MESSAGE = "Your card details have been updated."
NOT_REGISTERED = "Not registered"
EMAIL_TAKEN_MESSAGE = "This email address is already registered."

FAILURE_MESSAGES = {
    "ALREADY_PREMIUM": "You are already a premium member.",
    "NO_BILLING_CUSTOMER": "No billing information is registered for this account.",
}
RETRY_LATER_MESSAGE = "The payment service is temporarily unavailable. Please try again later."


def _failure_message(result, default):
    """Member-facing text for a failed ServiceResult."""
    if result.error_code in FAILURE_MESSAGES:
        return FAILURE_MESSAGES[result.error_code]
    if result.error_code in RETRYABLE_ERROR_CODES:
        return RETRY_LATER_MESSAGE
    return default


@login_required
@require_GET
def index(request):
    """Profile page. ?success=true is where card-update Checkout returns."""
    user = request.user
    context = {
        "user": user,
        "is_premium_user": user.is_premium,
    }
    if request.GET.get("success") == "true":
        context["success_message"] = CARD_UPDATED_MESSAGE
    return render(request, "accounts/index.html", context)


@login_required
@require_GET
def edit(request):
    user = request.user
    context = {
        "form": UserEditForm(initial=UserEditForm.initial_for(user)),
        "is_premium_user": user.is_premium,
        "stripe_customer_id": user.stripe_customer_id,
    }
    return render(request, "accounts/edit.html", context)


@login_required
@require_POST
def update(request):
    """
    Save the profile form.

    The email may stay the same; changing it to an address owned by
    another account is rejected on the email field.
    """
    user = request.user
    form = UserEditForm(request.POST)

    if form.is_valid():
        form_data = {"id": user.pk, **form.cleaned_data}
        if AccountService.is_email_changed(form_data) and AccountService.is_email_registered(
            form.cleaned_data["email"], exclude_user_id=user.pk
        ):
            form.add_error("email", EMAIL_TAKEN_MESSAGE)

    if form.is_valid():
        try:
            AccountService.update(user.pk, form.cleaned_data)
        except ValidationError as e:
            for field, errors in e.details.get("errors", {}).items():
                for error in errors:
                    form.add_error(field, error)
        else:
            messages.success(request, "Your profile has been updated.")
            return redirect("accounts:index")

    context = {
        "form": form,
        "is_premium_user": user.is_premium,
        "stripe_customer_id": user.stripe_customer_id,
    }
    return render(request, "accounts/edit.html", context)


@login_required
@require_POST
def upgrade(request):
    """Create a premium Checkout Session and hand its id to the browser."""
    user = request.user
    result = MembershipService.start_upgrade(user, request.build_absolute_uri())

    if not result.success:
        messages.error(
            request,
            _failure_message(result, "We could not start the upgrade. Please try again."),
        )
        return redirect("accounts:index")

    context = {
        "user": user,
        "session_id": result.data.id,
        "user_id": user.pk,
        "stripe_publishable_key": settings.STRIPE_PUBLISHABLE_KEY,
    }
    return render(request, "accounts/upgrade.html", context)


@login_required
@require_POST
def update_role(request):
    """Staff shortcut: grant the premium role without going through billing."""
    if not request.user.is_staff:
        logger.warning(
            "Non-staff role change attempt",
            extra={"user_id": request.user.pk},
        )
        raise PermissionDenied

    AccountService.change_role(request.user.pk, Role.Name.PREMIUM)
    messages.success(request, "Your membership has been changed to premium.")
    return redirect("accounts:index")


@login_required
@require_POST
def update_card(request):
    user = request.user
    result = MembershipService.start_card_update(user, request.build_absolute_uri())

    if not result.success:
        messages.error(
            request,
            _failure_message(result, "We could not start the card update. Please try again."),
        )
        return redirect("accounts:index")

    context = {
        "user": user,
        "session_id": result.data.id,
        "stripe_publishable_key": settings.STRIPE_PUBLISHABLE_KEY,
    }
    return render(request, "accounts/update_card.html", context)


@login_required
@require_GET
def downgrade(request):
    """Cancellation confirmation page."""
    context = {
        "stripe_customer_id": request.user.stripe_customer_id or NOT_REGISTERED,
        "is_premium_user": request.user.is_premium,
    }
    return render(request, "accounts/downgrade.html", context)


@login_required
@require_POST
def cancel(request):
    """
    Cancel the premium plan.

    With at_period_end set, the plan runs until the paid period ends;
    otherwise it stops now and the account is downgraded immediately.
    """
    user = request.user
    at_period_end = request.POST.get("at_period_end") in ("1", "true", "on")

    if at_period_end:
        result = MembershipService.cancel_at_period_end(user)
    else:
        result = MembershipService.cancel_membership(user)

    if not result.success:
        messages.error(
            request,
            _failure_message(
                result, "Cancelling your premium plan failed. Please try again."
            ),
        )
        return redirect("accounts:downgrade")

    report = result.data
    if report.outcome == CancellationOutcome.NO_SUBSCRIPTION:
        messages.info(request, "There is no active premium plan to cancel.")
    elif report.outcome == CancellationOutcome.SCHEDULED:
        messages.success(
            request,
            "Your premium plan will end at the close of the current billing period.",
        )
    else:
        messages.success(request, "Your premium plan has been cancelled.")
        for warning in report.warnings:
            messages.warning(request, warning)

    return redirect("accounts:index")


@login_required
@require_POST
def delete(request):
    """
    Delete an account.

    Members may delete only themselves; staff may delete any account.
    Deleting one's own account logs out.
    """
    try:
        user_id = int(request.POST.get("user_id") or request.user.pk)
    except ValueError:
        raise Http404("Account not found") from None

    is_self = user_id == request.user.pk
    if not is_self and not request.user.is_staff:
        raise PermissionDenied

    try:
        AccountService.delete_account(user_id)
    except NotFoundError:
        raise Http404("Account not found") from None

    if is_self:
        logout(request)
        messages.success(request, "Your account has been deleted.")
    else:
        messages.success(request, "The account has been deleted.")
    return redirect("/")
