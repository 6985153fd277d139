from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from subscriptarr.auth import AuthError, AuthInvalid, AuthProvider, get_provider
from subscriptarr.branding import SUBSCRIPTARR_HEADER, SUBSCRIPTARR_SECTION_END
from subscriptarr.env import Environment, get_env
from subscriptarr.errors import ApiError, QuotaExceededError
from subscriptarr.jobs import JobOptions, JobSummary, process_subscriptions
from subscriptarr.logger import get_logger
from subscriptarr.services import Services, build_services

log = get_logger("subscriptarr.runner")


class RunResult(str, Enum):
    OK = "ok"
    QUOTA_EXHAUSTED = "quota_exhausted"
    AUTH_INVALID = "auth_invalid"
    FAILED = "failed"


_EXIT_CODES = {
    RunResult.OK: 0,
    RunResult.QUOTA_EXHAUSTED: 10,
    RunResult.AUTH_INVALID: 12,
    RunResult.FAILED: 20,
}


@dataclass(frozen=True)
class RunOutcome:
    overall: RunResult
    summary: Optional[JobSummary] = None
    reason: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self.overall]


def exit_code_for(result: RunResult) -> int:
    return _EXIT_CODES[result]


def job_options_from_env(env: Environment) -> JobOptions:
    return JobOptions(
        limit=env.limit,
        update=env.update,
        dry_run=env.dry_run,
        aggregate_title=env.aggregate_title,
    )


def _infer_state(summary: JobSummary) -> RunResult:
    if summary.quota_exhausted:
        return RunResult.QUOTA_EXHAUSTED
    if summary.failed:
        return RunResult.FAILED
    return RunResult.OK


async def _run(services: Services, token: str, options: JobOptions) -> JobSummary:
    await services.scheduler.initialize()
    await services.sink.load()
    try:
        return await process_subscriptions(
            services.api, services.reconciler, services.sink, token, options
        )
    finally:
        await services.sink.flush()


def run_once(
    *,
    provider: Optional[AuthProvider] = None,
    services: Optional[Services] = None,
    options: Optional[JobOptions] = None,
) -> RunOutcome:
    env = get_env()
    options = options or job_options_from_env(env)
    provider = provider or get_provider("youtube")

    if not env.quiet:
        log.info(SUBSCRIPTARR_HEADER("Sync").rstrip("\n"))

    try:
        token = provider.get_token()
    except AuthInvalid as e:
        log.error(f"OAuth invalid: {e}")
        return RunOutcome(RunResult.AUTH_INVALID, reason=str(e))
    except AuthError as e:
        log.error(f"OAuth failed: {e}")
        return RunOutcome(RunResult.FAILED, reason=str(e))

    owned = services is None
    services = services or build_services(env)

    try:
        summary = asyncio.run(_run(services, token, options))
    except QuotaExceededError as e:
        log.warning(str(e))
        return RunOutcome(RunResult.QUOTA_EXHAUSTED, reason=str(e))
    except ApiError as e:
        if e.status == 401:
            log.error(f"OAuth invalid: {e}")
            return RunOutcome(RunResult.AUTH_INVALID, reason=str(e))
        log.error(f"Run failed: {e}")
        return RunOutcome(RunResult.FAILED, reason=str(e))
    finally:
        if owned:
            services.close()

    state = _infer_state(summary)

    quota = services.scheduler.status()
    log.info(
        f"Quota used: {quota['used']}/{quota['limit']} (resets in {quota['reset_in']:.0f}s)"
    )
    if not env.quiet:
        log.info(SUBSCRIPTARR_SECTION_END())

    return RunOutcome(state, summary=summary)
