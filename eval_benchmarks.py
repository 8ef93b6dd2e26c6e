"""
Evaluation benchmarks for Ask REST Data.
Checks natural language parsing against expected table/query pairs.

Run: python eval_benchmarks.py
"""
from __future__ import annotations
import asyncio
import json
import sys
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pipeline.main import get_parse_llm
from pipeline.resolver import resolve_query


@dataclass
class TestCase:
    """A single parsing benchmark case."""
    name: str
    question: str
    expected_table: str
    expected_query: Optional[str] = None
    expect_error: bool = False


# =============================================================================
# BENCHMARK TEST CASES
# =============================================================================
BENCHMARK_TESTS: List[TestCase] = [
    TestCase("all_todos", "get all todos", "todos", "select=*"),
    TestCase("completed_todos", "show completed todos", "todos", "select=*&is_done=eq.true"),
    TestCase("incomplete_todos", "find incomplete todos", "todos", "select=*&is_done=eq.false"),
    TestCase("pending_tasks", "list pending tasks", "todos", "select=*&is_done=eq.false"),
    TestCase("title_like", "show todos with title like dog", "todos", "select=*&title=ilike.*dog*"),
    TestCase("containing", "find todos containing work", "todos", "select=*&title=ilike.*work*"),
    TestCase("quoted", 'show todos "buy milk"', "todos", "select=*&title=ilike.*buy milk*"),
    TestCase("by_id", "show todo with id 42", "todos", "select=*&id=eq.42"),
    TestCase("trailing_id", "show todo 7", "todos", "select=*&id=eq.7"),
    TestCase("due_date", "show todos with due date", "todos", "select=*&due_date=not.is.null"),
    TestCase("no_due_date", "show todos without due date", "todos", "select=*&due_date=is.null"),
    TestCase("latest", "show latest todos", "todos", "select=*&order=created_at.desc"),
    TestCase("top_5", "show top 5 todos", "todos", "select=*&limit=5"),
    TestCase("first_10", "show first 10 todos", "todos", "select=*&order=created_at.asc&limit=10"),
    TestCase("only_title", "show only title of todos", "todos", "select=title"),
    TestCase("id_and_title", "get id and title of todos", "todos", "select=id,title"),
    TestCase("active_status", "show todos with status active", "todos", "select=*&status=eq.active"),
    TestCase("users", "get all users", "users", "select=*"),
    TestCase("posts", "show posts", "posts", "select=*"),
    TestCase("default_table", "show completed", "todos", "select=*&is_done=eq.true"),
    TestCase("not_a_query", "hello there", "", expect_error=True),
    TestCase("ambiguous", "user", "", expect_error=True),
]


@dataclass
class TestResult:
    """Result of a single benchmark case."""
    name: str
    passed: bool
    errors: List[str]
    table: str = ""
    query: str = ""
    execution_time_ms: float = 0


def evaluate(test: TestCase, table: str, query: str, error: Optional[str]) -> List[str]:
    """Compare a parse against the expected values."""
    errors = []
    if test.expect_error:
        if error is None:
            errors.append(f"expected an error, got table='{table}', query='{query}'")
        return errors

    if error is not None:
        errors.append(f"unexpected error: {error}")
        return errors
    if table != test.expected_table:
        errors.append(f"table: expected '{test.expected_table}', got '{table}'")
    if test.expected_query is not None and query != test.expected_query:
        errors.append(f"query: expected '{test.expected_query}', got '{query}'")
    return errors


async def run_benchmark(test: TestCase, llm=None) -> TestResult:
    t0 = time.perf_counter()
    parsed = await resolve_query(test.question, llm)
    elapsed = (time.perf_counter() - t0) * 1000
    errors = evaluate(test, parsed.table, parsed.query, parsed.error)
    return TestResult(
        name=test.name,
        passed=not errors,
        errors=errors,
        table=parsed.table,
        query=parsed.query,
        execution_time_ms=elapsed,
    )


async def run_all_benchmarks(use_llm: bool = False, verbose: bool = True) -> Dict[str, Any]:
    llm = get_parse_llm() if use_llm else None
    if use_llm and llm is None:
        print("Warning: --llm requested but no API key configured; using heuristic builder.")

    results = []
    for test in BENCHMARK_TESTS:
        result = await run_benchmark(test, llm)
        results.append(result)
        if verbose:
            status = "PASS" if result.passed else "FAIL"
            print(f"[{status}] {test.name}: {result.table or '-'} {result.query or '-'}")

    passed = sum(1 for r in results if r.passed)
    failed = len(results) - passed
    return {
        "total_tests": len(results),
        "passed": passed,
        "failed": failed,
        "pass_rate": passed / len(results) * 100 if results else 0,
        "total_time_ms": sum(r.execution_time_ms for r in results),
        "results": [
            {
                "name": r.name,
                "passed": r.passed,
                "errors": r.errors,
                "table": r.table,
                "query": r.query,
                "time_ms": r.execution_time_ms,
            }
            for r in results
        ],
    }


def print_summary(summary: Dict[str, Any]):
    """Print formatted summary of benchmark results."""
    print("\n" + "=" * 60)
    print("BENCHMARK SUMMARY")
    print("=" * 60)
    print(f"Total Tests: {summary['total_tests']}")
    print(f"Passed: {summary['passed']}")
    print(f"Failed: {summary['failed']}")
    print(f"Pass Rate: {summary['pass_rate']:.1f}%")
    print(f"Total Time: {summary['total_time_ms']:.0f}ms")

    if summary['failed'] > 0:
        print("\nFailed Tests:")
        for r in summary['results']:
            if not r['passed']:
                print(f"  - {r['name']}")
                for err in r['errors']:
                    print(f"      {err}")

    print("=" * 60)


def main():
    """Run benchmarks from command line."""
    import argparse

    parser = argparse.ArgumentParser(description="Run Ask REST Data parsing benchmarks")
    parser.add_argument("--llm", action="store_true", help="Use the LLM for parsing")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    parser.add_argument("--quiet", action="store_true", help="Minimal output")

    args = parser.parse_args()

    print("Ask REST Data - Parsing Benchmarks")
    print("-" * 40)

    summary = asyncio.run(run_all_benchmarks(use_llm=args.llm, verbose=not args.quiet))

    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print_summary(summary)

    return 0 if summary['failed'] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
