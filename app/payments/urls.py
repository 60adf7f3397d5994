"""
URL configuration for the payments app.

URL Structure:
    Payouts:
        /payouts/                  GET, POST
        /payouts/{id}/             GET
        /payouts/{id}/approve/     POST
        /payouts/{id}/complete/    POST
        /payouts/{id}/reject/      POST
        /payouts/{id}/sync/        POST
        /payouts/stats/            GET
        /payouts/batch/            POST

    Bank accounts:
        /bank-accounts/validate/   POST

    Earnings:
        /earnings/                 GET
        /earnings/export/          GET

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from payments.views import (
    BankAccountValidationView,
    FinancialReportExportView,
    PayoutViewSet,
    PlatformEarningsView,
)

router = DefaultRouter()
router.register(r"payouts", PayoutViewSet, basename="payout")

app_name = "payments"

urlpatterns = [
    path("", include(router.urls)),
    path(
        "bank-accounts/validate/",
        BankAccountValidationView.as_view(),
        name="bank-account-validate",
    ),
    path("earnings/", PlatformEarningsView.as_view(), name="earnings"),
    path("earnings/export/", FinancialReportExportView.as_view(), name="earnings-export"),
]
