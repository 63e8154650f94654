"""arq worker settings module.

Import path for arq CLI: arq wadzzo.workers.settings.WorkerSettings
"""

from __future__ import annotations

from wadzzo.workers.reward_worker import WorkerSettings

__all__ = ["WorkerSettings"]
