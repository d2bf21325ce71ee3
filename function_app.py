"""
Azure Functions entry point: runs the weekly course report job on a timer.
"""

import azure.functions as func

from src.job.config import JobConfig
from src.job.weekly_report_job import WEEKLY_SCHEDULE, open_job

app = func.FunctionApp()


def describe_timer(timer: func.TimerRequest) -> str:
    return f"past_due={timer.past_due}"


def run_weekly_report(trigger_context: str) -> None:
    config = JobConfig.from_env()
    with open_job(config) as job:
        result = job.run(trigger_context=trigger_context)
    # Failed runs must surface as failed executions on the host.
    result.raise_for_status()


@app.function_name(name="func-weekly-report")
@app.timer_trigger(schedule=WEEKLY_SCHEDULE, arg_name="timer", run_on_startup=False, use_monitor=True)
def weekly_report(timer: func.TimerRequest) -> None:
    run_weekly_report(describe_timer(timer))
