"""
Tests for PayrollRunAggregator / run_payroll_batch.

Covers:
- Failure isolation: one malformed structure fails one employee only
- Net pay combination (structure net - loan installments + adjustments)
- Adjustment filtering by period and approval
- Run status, counts and company totals
- Loan advancement and log context propagation into worker threads
"""

from dataclasses import replace

import pytest

from payroll_batch import (
    EmployeeRecord,
    PayrollRunAggregator,
    PayrollRunStatus,
    run_payroll_batch,
)
from payroll_config.schema import PayrollEngineConfig
from payroll_engines.adjustments import Adjustment, AdjustmentType
from payroll_engines.loan import LoanStatus
from payroll_engines.period import PayPeriod
from payroll_kernel.domain.values import Money
from tests.builders import (
    inr,
    make_adjustment,
    make_component,
    make_loan,
    make_structure,
)

APRIL = PayPeriod(2025, 4)


def _malformed_structure():
    return make_structure((
        make_component("Basic", 1, category="basic", rate="40", reference="ctc"),
        make_component("HRA", 2, rate="50", reference="basic"),
        make_component("Bonus", 2, amount="1000"),
    ), structure_id="broken")


def _ten_employees(malformed_index: int | None = 3):
    employees = []
    for i in range(1, 11):
        override = _malformed_structure() if i == malformed_index else None
        employees.append(EmployeeRecord(str(i), inr(100000 * i), structure=override))
    return employees


class TestFailureIsolation:
    """Employee #3 of 10 carries a malformed structure."""

    def setup_method(self):
        self.result = run_payroll_batch(
            make_structure(), _ten_employees(), [], [], APRIL,
        )

    def test_nine_successes(self):
        assert len(self.result.employee_results) == 9
        assert self.result.processed_employees == 9
        assert self.result.total_employees == 10

    def test_failed_employee_ids(self):
        assert self.result.failed_employee_ids == ("3",)
        failure = self.result.failures[0]
        assert failure.error_code == "DUPLICATE_PRIORITY"
        assert "priority 2" in failure.message

    def test_net_payout_sums_successes_only(self):
        # net pay is 55.2% of CTC for the standard structure
        assert self.result.totals.net_payout == inr(55200 * 52)
        assert self.result.totals.gross_earnings == inr(60000 * 52)
        assert self.result.totals.total_deductions == inr(4800 * 52)

    def test_results_in_input_order(self):
        assert [r.employee_id for r in self.result.employee_results] == \
            ["1", "2", "4", "5", "6", "7", "8", "9", "10"]

    def test_status(self):
        assert self.result.status is PayrollRunStatus.PARTIALLY_COMPLETED

    def test_period(self):
        assert self.result.period == APRIL


class TestNetPayCombination:

    def setup_method(self):
        self.loans = [
            make_loan("L1", "E1", principal="120000", rate="12", tenure=12,
                      start_month=1, start_year=2025,
                      remaining_balance=inr("91329.65")),
            make_loan("L9", "ghost", principal="1000", rate="0", tenure=2),
        ]
        self.adjustments = [
            make_adjustment("A1", "E1", amount="5000", category="bonus"),
            make_adjustment("A2", "E1", amount="3000",
                            adjustment_type=AdjustmentType.REIMBURSEMENT,
                            tax_exemption_limit=inr("2000"), category="travel"),
            make_adjustment("A3", "E1", amount="2500", is_approved=False),
            make_adjustment("A4", "E1", amount="9999", month=5),
        ]
        self.result = run_payroll_batch(
            make_structure(),
            [EmployeeRecord("E1", inr("600000")), EmployeeRecord("E2", inr("600000"))],
            self.loans,
            self.adjustments,
            APRIL,
        )
        self.e1 = self.result.result_for("E1")
        self.e2 = self.result.result_for("E2")

    def test_structure_net(self):
        assert self.e1.structure_net_pay == inr("331200.00")

    def test_current_installment_deducted(self):
        assert len(self.e1.loan_installments) == 1
        installment = self.e1.loan_installments[0]
        assert installment.month_index == 4
        assert self.e1.loan_deduction == inr("10661.85")

    def test_only_approved_adjustments_for_period(self):
        assert self.e1.adjustments.count == 2
        assert self.e1.adjustment_amount == inr("8000")
        assert self.e1.adjustments.reimbursement_total == inr("3000")

    def test_final_net_pay(self):
        assert self.e1.final_net_pay == inr("328538.15")

    def test_taxable_income_includes_taxable_adjustments(self):
        assert self.e1.taxable_income == inr("337200.00")

    def test_employee_without_loans_or_adjustments(self):
        assert self.e2.loan_deduction == Money.zero("INR")
        assert self.e2.final_net_pay == inr("331200.00")
        assert self.e2.loan_installments == ()

    def test_company_totals(self):
        totals = self.result.totals
        assert totals.gross_earnings == inr("720000.00")
        assert totals.loan_deductions == inr("10661.85")
        assert totals.adjustments == inr("8000")
        assert totals.net_payout == inr("659738.15")
        assert totals.taxable_income == inr("668400.00")

    def test_updated_loans(self):
        assert len(self.result.updated_loans) == 1
        updated = self.result.updated_loans[0]
        assert updated.loan_id == "L1"
        assert updated.remaining_balance == inr("81581.10")
        assert updated.status is LoanStatus.ACTIVE

    def test_inputs_not_mutated(self):
        assert self.loans[0].remaining_balance == inr("91329.65")

    def test_status_completed(self):
        assert self.result.status is PayrollRunStatus.COMPLETED
        assert self.result.failed_employee_ids == ()


class TestLoanFailures:

    def test_invalid_loan_fails_only_its_employee(self):
        loans = [make_loan("bad", "E1", tenure=0, start_month=4)]
        result = run_payroll_batch(
            make_structure(),
            [EmployeeRecord("E1", inr("600000")), EmployeeRecord("E2", inr("600000"))],
            loans, [], APRIL,
        )
        assert result.failed_employee_ids == ("E1",)
        assert result.failures[0].error_code == "INVALID_LOAN_PARAMETERS"
        assert result.processed_employees == 1

    def test_closed_loan_not_deducted(self):
        loans = [make_loan("L1", "E1", status=LoanStatus.CLOSED)]
        result = run_payroll_batch(
            make_structure(), [EmployeeRecord("E1", inr("600000"))], loans, [], APRIL,
        )
        assert result.result_for("E1").loan_deduction == Money.zero("INR")
        assert result.updated_loans == ()

    def test_last_installment_completes_loan(self):
        loans = [make_loan("L1", "E1", tenure=1, start_month=4)]
        result = run_payroll_batch(
            make_structure(), [EmployeeRecord("E1", inr("600000"))], loans, [], APRIL,
        )
        assert result.updated_loans[0].status is LoanStatus.COMPLETED
        assert result.updated_loans[0].remaining_balance == Money.zero("INR")


class TestRunStatus:

    def test_all_failed(self):
        employees = [EmployeeRecord("E1", inr("1000"), structure=_malformed_structure())]
        result = run_payroll_batch(make_structure(), employees, [], [], APRIL)
        assert result.status is PayrollRunStatus.FAILED
        assert result.totals.net_payout == Money.zero("INR")

    def test_empty_run(self):
        result = run_payroll_batch(make_structure(), [], [], [], APRIL)
        assert result.status is PayrollRunStatus.COMPLETED
        assert result.total_employees == 0
        assert result.totals.gross_earnings == Money.zero("INR")


class TestRunPreconditions:

    def test_duplicate_employee_rejected(self):
        employees = [EmployeeRecord("E1", inr("1")), EmployeeRecord("E1", inr("2"))]
        with pytest.raises(ValueError, match="appears twice"):
            run_payroll_batch(make_structure(), employees, [], [], APRIL)

    def test_period_required(self):
        with pytest.raises(ValueError, match="pay period"):
            PayrollRunAggregator().run(make_structure(), [], period=None)


class TestCurrencyIsolation:
    """A record in the wrong currency fails only the employee it belongs to."""

    def setup_method(self):
        self.employees = [
            EmployeeRecord("E1", inr("600000")),
            EmployeeRecord("E2", inr("600000")),
        ]

    def _run(self, employees=None, loans=(), adjustments=()):
        return run_payroll_batch(
            make_structure(), employees or self.employees, loans, adjustments, APRIL,
        )

    def test_adjustment_in_other_currency(self):
        usd_bonus = Adjustment(
            adjustment_id="A1", employee_id="E2",
            adjustment_type=AdjustmentType.VARIABLE_PAY,
            amount=Money.of("500", "USD"), applicable_month=4, applicable_year=2025,
        )
        result = self._run(adjustments=[usd_bonus])
        assert result.failed_employee_ids == ("E2",)
        assert result.failures[0].error_code == "CURRENCY_MISMATCH"
        assert "Adjustment A1 is in USD, expected INR" in result.failures[0].message
        assert result.result_for("E1").final_net_pay == inr("331200.00")
        assert result.status is PayrollRunStatus.PARTIALLY_COMPLETED

    def test_loan_in_other_currency(self):
        usd_loan = replace(make_loan("L7", "E1"), principal=Money.of("1000", "USD"),
                           remaining_balance=None)
        result = self._run(loans=[usd_loan])
        assert result.failed_employee_ids == ("E1",)
        assert result.failures[0].error_code == "CURRENCY_MISMATCH"
        assert result.processed_employees == 1
        assert result.updated_loans == ()

    def test_ctc_in_other_currency(self):
        employees = [
            EmployeeRecord("E1", Money.of("1000", "USD")),
            EmployeeRecord("E2", inr("600000")),
        ]
        result = self._run(employees=employees)
        assert result.failed_employee_ids == ("E1",)
        assert result.failures[0].error_code == "CURRENCY_MISMATCH"
        assert result.totals.net_payout == inr("331200.00")


class TestConcurrency:

    def test_single_worker_matches_pool(self):
        employees = _ten_employees(malformed_index=None)
        pooled = run_payroll_batch(make_structure(), employees, [], [], APRIL)
        serial = run_payroll_batch(
            make_structure(), employees, [], [], APRIL,
            config=PayrollEngineConfig(max_workers=1),
        )
        assert pooled.employee_results == serial.employee_results
        assert pooled.totals == serial.totals

    def test_employee_id_bound_in_worker_logs(self, captured_logs):
        employees = [EmployeeRecord(f"E{i}", inr(100000 * i)) for i in range(1, 5)]
        run_payroll_batch(
            make_structure(), employees, [], [], APRIL,
            config=PayrollEngineConfig(max_workers=4),
        )
        completed = [
            r for r in captured_logs() if r["message"] == "structure_evaluation_completed"
        ]
        assert sorted(r["employee_id"] for r in completed) == ["E1", "E2", "E3", "E4"]

    def test_caller_context_propagates(self, captured_logs):
        from payroll_kernel.logging_config import LogContext

        with LogContext.bind(run_id="run-42"):
            run_payroll_batch(
                make_structure(), [EmployeeRecord("E1", inr("600000"))], [], [], APRIL,
            )
        records = [
            r for r in captured_logs() if r["message"] == "structure_evaluation_completed"
        ]
        assert records[-1]["run_id"] == "run-42"
        assert "employee_id" not in LogContext.get_all()

    def test_failure_logged_with_code(self, captured_logs):
        run_payroll_batch(make_structure(), _ten_employees(), [], [], APRIL)
        failures = [r for r in captured_logs() if r["message"] == "payroll_employee_failed"]
        assert len(failures) == 1
        assert failures[0]["employee_id"] == "3"
        assert failures[0]["error_code"] == "DUPLICATE_PRIORITY"
