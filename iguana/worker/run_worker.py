"""Run ARQ worker. Usage: python -m iguana.worker.run_worker"""

from arq import run_worker
from arq.cron import cron

from iguana.worker.tasks import get_redis_settings, reconcile_grants, shutdown, startup


class WorkerSettings:
    redis_settings = get_redis_settings()
    functions = [reconcile_grants]
    cron_jobs = [
        cron(reconcile_grants, minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55}, second=0),
    ]
    on_startup = startup
    on_shutdown = shutdown


if __name__ == "__main__":
    run_worker(WorkerSettings)
