"""Payroll services."""

from canpay.services.commit_service import CommitService
from canpay.services.directory import TenantDirectory
from canpay.services.pay_run_service import PayRunPreview, PayRunService, parse_pay_period
from canpay.services.remittance import RemittanceSummary, remittance_due_date, summarize_remittance
from canpay.services.state_machine import PayRunStateMachine, PayRunStatus
from canpay.services.year_end import ROEReasonCode, YearEndService

__all__ = [
    "CommitService",
    "TenantDirectory",
    "PayRunPreview",
    "PayRunService",
    "parse_pay_period",
    "RemittanceSummary",
    "remittance_due_date",
    "summarize_remittance",
    "PayRunStateMachine",
    "PayRunStatus",
    "ROEReasonCode",
    "YearEndService",
]
