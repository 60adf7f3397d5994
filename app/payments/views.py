"""
Admin API for payouts and platform earnings.

URL Structure:
    /api/v1/payments/payouts/                    GET, POST
    /api/v1/payments/payouts/{id}/               GET
    /api/v1/payments/payouts/{id}/approve/       POST
    /api/v1/payments/payouts/{id}/complete/      POST
    /api/v1/payments/payouts/{id}/reject/        POST
    /api/v1/payments/payouts/{id}/sync/          POST
    /api/v1/payments/payouts/stats/              GET
    /api/v1/payments/payouts/batch/              POST  (?async=true queues it)
    /api/v1/payments/bank-accounts/validate/     POST
    /api/v1/payments/earnings/                   GET   (?period=month)
    /api/v1/payments/earnings/export/            GET   (?period=month), CSV

Design Decisions:
    - Staff only (IsAdminUser); the operator's username is the audit actor
    - Views stay thin; every state change goes through PayoutOrchestrator
    - ServiceResult failures render as 400, or 502 when the provider refused
    - Raised application errors are rendered by core.exceptions.api_exception_handler
"""

from __future__ import annotations

from django.http import HttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.models import Payout
from payments.pagination import PayoutCursorPagination
from payments.serializers import (
    ApprovePayoutSerializer,
    BankAccountValidationSerializer,
    BatchDisbursementResultSerializer,
    BatchDisbursementSerializer,
    CompletePayoutSerializer,
    EarningsQuerySerializer,
    PayoutCreateSerializer,
    PayoutDetailSerializer,
    PayoutSerializer,
    PayoutStatsSerializer,
    PlatformEarningsSerializer,
    RejectPayoutSerializer,
)
from payments.services import (
    BatchDisburser,
    PayoutOrchestrator,
    export_financial_report,
    get_platform_earnings,
    report_filename,
)
from payments.services.batch_disburser import new_batch_id
from payments.tasks import disburse_batch_task
from payments.validators import PayoutRequest

# Failure codes that mean the provider, not the request, was the problem
PROVIDER_FAILURE_CODES = frozenset({"PROVIDER_ERROR", "PAYOUT_FAILED"})


def actor_for(request) -> str:
    return request.user.get_username() or f"user:{request.user.pk}"


def failure_response(result) -> Response:
    http_status = (
        status.HTTP_502_BAD_GATEWAY
        if result.error_code in PROVIDER_FAILURE_CODES
        else status.HTTP_400_BAD_REQUEST
    )
    return Response(result.to_response(), status=http_status)


def is_truthy(value: str | None) -> bool:
    return (value or "").lower() in ("1", "true", "yes")


@extend_schema_view(
    list=extend_schema(
        operation_id="list_payouts",
        summary="List payouts",
        parameters=[
            OpenApiParameter("status", OpenApiTypes.STR, many=True),
            OpenApiParameter("method", OpenApiTypes.STR, many=True),
            OpenApiParameter("host_id", OpenApiTypes.INT),
            OpenApiParameter("start_date", OpenApiTypes.DATETIME),
            OpenApiParameter("end_date", OpenApiTypes.DATETIME),
            OpenApiParameter("in_flight", OpenApiTypes.BOOL),
        ],
        tags=["Payments - Payouts"],
    ),
    retrieve=extend_schema(
        operation_id="get_payout",
        summary="Get payout with audit trail",
        tags=["Payments - Payouts"],
    ),
)
class PayoutViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Payout administration.

    list:
        Payouts filtered by status, method, host and creation date, newest first.

    create:
        Submit a payout request; fee and net amount are computed server-side.

    retrieve:
        Payout detail including recipient, lifecycle fields and audit trail.

    approve / complete / reject / sync:
        Operator commands on a single payout.

    stats / batch:
        Collection-level statistics and batch disbursement.
    """

    permission_classes = [IsAdminUser]
    pagination_class = PayoutCursorPagination
    serializer_class = PayoutSerializer

    def get_queryset(self):
        if self.action == "list":
            return PayoutOrchestrator.list_payouts(self.request.query_params)
        return Payout.objects.prefetch_related("audit_entries")

    def filter_queryset(self, queryset):
        # list_payouts already applied PayoutFilter
        return queryset

    def get_object(self):
        return PayoutOrchestrator.get_payout(self.kwargs["pk"])

    def get_serializer_class(self):
        if self.action == "list":
            return PayoutSerializer
        return PayoutDetailSerializer

    def _payout_response(self, result, success_status=status.HTTP_200_OK) -> Response:
        if not result.success:
            return failure_response(result)
        return Response(PayoutDetailSerializer(result.data).data, status=success_status)

    @extend_schema(
        operation_id="create_payout",
        summary="Submit payout request",
        request=PayoutCreateSerializer,
        responses={
            201: PayoutDetailSerializer,
            400: OpenApiResponse(description="Amount out of bounds or recipient incomplete"),
        },
        tags=["Payments - Payouts"],
    )
    def create(self, request):
        serializer = PayoutCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PayoutOrchestrator.submit_payout_request(
            PayoutRequest(**serializer.validated_data),
            actor=actor_for(request),
        )
        return self._payout_response(result, success_status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="approve_payout",
        summary="Approve payout and submit it to the provider",
        request=ApprovePayoutSerializer,
        responses={
            200: PayoutDetailSerializer,
            404: OpenApiResponse(description="Payout not found"),
            409: OpenApiResponse(description="Payout is not pending or was modified concurrently"),
            502: OpenApiResponse(description="Provider refused the payout"),
        },
        tags=["Payments - Payouts"],
    )
    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        serializer = ApprovePayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PayoutOrchestrator.approve_payout(
            pk,
            transaction_ref=serializer.validated_data["transaction_ref"],
            actor=actor_for(request),
        )
        return self._payout_response(result)

    @extend_schema(
        operation_id="complete_payout",
        summary="Mark payout completed",
        request=CompletePayoutSerializer,
        responses={200: PayoutDetailSerializer},
        tags=["Payments - Payouts"],
    )
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        serializer = CompletePayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PayoutOrchestrator.complete_payout(
            pk,
            proof_url=serializer.validated_data.get("proof_url") or None,
            actor=actor_for(request),
        )
        return self._payout_response(result)

    @extend_schema(
        operation_id="reject_payout",
        summary="Reject payout",
        request=RejectPayoutSerializer,
        responses={200: PayoutDetailSerializer},
        tags=["Payments - Payouts"],
    )
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = RejectPayoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PayoutOrchestrator.reject_payout(
            pk,
            reason=serializer.validated_data["reason"],
            actor=actor_for(request),
        )
        return self._payout_response(result)

    @extend_schema(
        operation_id="sync_payout",
        summary="Pull payout status from the provider",
        request=None,
        tags=["Payments - Payouts"],
    )
    @action(detail=True, methods=["post"])
    def sync(self, request, pk=None):
        result = PayoutOrchestrator.sync_provider_status(pk, actor=actor_for(request))
        if not result.success:
            return failure_response(result)

        sync = result.data
        return Response(
            {
                "payout": PayoutDetailSerializer(sync.payout).data,
                "provider_status": sync.provider_status,
                "mapped_status": sync.mapped_status,
                "changed": sync.changed,
            }
        )

    @extend_schema(
        operation_id="get_payout_stats",
        summary="Payout statistics",
        responses={200: PayoutStatsSerializer},
        tags=["Payments - Payouts"],
    )
    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(PayoutStatsSerializer(PayoutOrchestrator.get_payout_stats()).data)

    @extend_schema(
        operation_id="disburse_batch",
        summary="Approve several payouts in one batch",
        request=BatchDisbursementSerializer,
        parameters=[OpenApiParameter("async", OpenApiTypes.BOOL, description="Queue as a background task")],
        responses={
            200: BatchDisbursementResultSerializer,
            202: OpenApiResponse(description="Batch queued"),
            409: OpenApiResponse(description="Another batch is running"),
        },
        tags=["Payments - Payouts"],
    )
    @action(detail=False, methods=["post"])
    def batch(self, request):
        serializer = BatchDisbursementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payout_ids = [str(pid) for pid in serializer.validated_data["payout_ids"]]
        actor = actor_for(request)

        if is_truthy(request.query_params.get("async")):
            batch_id = new_batch_id()
            task = disburse_batch_task.delay(payout_ids, actor=actor, batch_id=batch_id)
            return Response(
                {"batch_id": batch_id, "task_id": task.id, "status": "queued"},
                status=status.HTTP_202_ACCEPTED,
            )

        result = BatchDisburser.disburse(payout_ids, actor=actor)
        return Response(BatchDisbursementResultSerializer(result.to_dict()).data)


class BankAccountValidationView(APIView):
    """
    Pre-flight check of a bank account with the provider.

    POST /api/v1/payments/bank-accounts/validate/

    Request body:
        {"bank_code": "BPI", "account_number": "1234567890"}

    Returns:
        {"valid": true, "account_name": "Juan Dela Cruz"}
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="validate_bank_account",
        summary="Validate bank account",
        request=BankAccountValidationSerializer,
        tags=["Payments - Bank Accounts"],
    )
    def post(self, request):
        serializer = BankAccountValidationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PayoutOrchestrator.validate_bank_account(**serializer.validated_data)
        if not result.success:
            return failure_response(result)
        return Response(result.data)


class PlatformEarningsView(APIView):
    """
    Platform financial metrics for a period.

    GET /api/v1/payments/earnings/?period=month
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="get_platform_earnings",
        summary="Platform earnings",
        parameters=[EarningsQuerySerializer],
        responses={200: PlatformEarningsSerializer},
        tags=["Payments - Earnings"],
    )
    def get(self, request):
        query = EarningsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        period = query.validated_data["period"]

        metrics = get_platform_earnings(period)
        return Response(PlatformEarningsSerializer({"period": period, **vars(metrics)}).data)


class FinancialReportExportView(APIView):
    """
    Platform financial report as a CSV download.

    GET /api/v1/payments/earnings/export/?period=month
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="export_financial_report",
        summary="Export financial report (CSV)",
        parameters=[EarningsQuerySerializer],
        responses={(200, "text/csv"): OpenApiTypes.STR},
        tags=["Payments - Earnings"],
    )
    def get(self, request):
        query = EarningsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        period = query.validated_data["period"]

        metrics = get_platform_earnings(period)
        response = HttpResponse(
            export_financial_report(metrics, period, generated_at=metrics.generated_at),
            content_type="text/csv; charset=utf-8",
        )
        response["Content-Disposition"] = (
            f'attachment; filename="{report_filename(period, metrics.generated_at)}"'
        )
        return response
