"""
Factory functions for every TestResult shape a runner can emit.

All submitter-visible failure text is produced here so that the container,
remote and local backends report the same outcome with the same message.
"""

import signal

from .constant import COMPILE_CASE_ID, SETUP_CASE_ID, RuntimeFault
from .models import TestResult
from .normalize import format_for_display, normalize_output

TIME_LIMIT_EXCEEDED = 'Time limit exceeded'
WRONG_ANSWER = 'Wrong answer'

_SIGNAL_FAULTS = {
    signal.SIGSEGV: RuntimeFault.SEGMENTATION_FAULT,
    signal.SIGBUS: RuntimeFault.SEGMENTATION_FAULT,
    signal.SIGABRT: RuntimeFault.ABORTED,
    signal.SIGFPE: RuntimeFault.FLOATING_POINT,
    signal.SIGXFSZ: RuntimeFault.OUTPUT_LIMIT,
}


def make_test_result(
    test_case_id: str,
    passed: bool = False,
    output: str = '',
    error: str = '',
    execution_time: float = 0.0,
    memory: int = 0,
) -> TestResult:
    return TestResult(
        testCaseId=test_case_id,
        passed=passed,
        output=output,
        error=error,
        executionTime=execution_time,
        memory=memory,
    )


def make_system_error(test_case_id: str, detail: str) -> TestResult:
    """
    Build a result for an infrastructure failure.

    Args:
        test_case_id: Test case (or "setup"/"compile") the failure belongs to
        detail: Sanitized description, never a raw exception or host path

    Returns:
        Failing TestResult
    """
    return make_test_result(test_case_id, error=f'System error: {detail}')


def make_setup_failure(detail: str) -> TestResult:
    return make_system_error(SETUP_CASE_ID, detail)


def make_compile_failure(diagnostic: str) -> TestResult:
    return make_test_result(
        COMPILE_CASE_ID,
        error=f'Compilation error: {diagnostic.strip()}',
    )


def make_service_timeout(test_case_id: str, detail: str) -> TestResult:
    return make_test_result(test_case_id, error=f'Service timeout: {detail}')


def make_time_limit_exceeded(
    test_case_id: str,
    output: str = '',
    execution_time: float = 0.0,
) -> TestResult:
    return make_test_result(
        test_case_id,
        output=normalize_output(output),
        error=TIME_LIMIT_EXCEEDED,
        execution_time=execution_time,
    )


def runtime_error_message(fault: RuntimeFault, detail: str = '') -> str:
    message = f'Runtime error: {fault.value}'
    if detail:
        message += f' ({detail})'
    return message


def fault_from_signal(signum: int) -> RuntimeFault:
    return _SIGNAL_FAULTS.get(signum, RuntimeFault.OTHER)


def exit_code_message(exit_code: int) -> str:
    """
    Describe a non-zero exit code the way a shell reports it.

    Codes above 128 mean the process died from signal ``code - 128``.
    """
    if exit_code > 128:
        fault = fault_from_signal(exit_code - 128)
        if fault != RuntimeFault.OTHER:
            return runtime_error_message(fault, f'exit code {exit_code}')
    return f'Runtime error: program exited with code {exit_code}'


def make_runtime_error(
    test_case_id: str,
    message: str,
    output: str = '',
    execution_time: float = 0.0,
    memory: int = 0,
) -> TestResult:
    return make_test_result(
        test_case_id,
        output=normalize_output(output),
        error=message,
        execution_time=execution_time,
        memory=memory,
    )


def make_comparison_result(
    test_case_id: str,
    actual: str,
    expected: str,
    execution_time: float = 0.0,
    memory: int = 0,
) -> TestResult:
    """
    Compare normalized program output against normalized expected output.

    Args:
        test_case_id: Test case id
        actual: Raw program stdout
        expected: Expected output as stored in the challenge
        execution_time: Measured run time in seconds
        memory: Peak memory in KB, 0 when unknown

    Returns:
        Passing TestResult on an exact match, otherwise a wrong-answer
        result whose error shows both values with newlines escaped
    """
    actual = normalize_output(actual)
    expected = normalize_output(expected)
    passed = actual == expected
    error = ''
    if not passed:
        error = (f"Expected '{format_for_display(expected)}' "
                 f"but got '{format_for_display(actual)}'")
    return make_test_result(
        test_case_id,
        passed=passed,
        output=actual,
        error=error,
        execution_time=execution_time,
        memory=memory,
    )


def redact_result(result: TestResult) -> TestResult:
    """Hide what a hidden test case expected and what the program printed."""
    error = result.error
    if error.startswith('Expected '):
        error = WRONG_ANSWER
    return result.model_copy(update={'output': '', 'error': error})
