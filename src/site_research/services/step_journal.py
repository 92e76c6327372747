import json
import logging
from typing import Any

from site_research.kv_store import KeyValueStore


logger = logging.getLogger(__name__)


class StepJournal:
    """Completed step outputs per run.

    A step that finds its output here returns it instead of running again, so a
    retried or resumed run never repeats a model call, upload or status write.
    Entries are cleared once the run publishes; failed runs keep theirs so they
    can be resumed.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    @staticmethod
    def key(run_id: str, step_name: str) -> str:
        return f"journal:{run_id}:{step_name}"

    async def get(self, run_id: str, step_name: str) -> Any | None:
        raw = await self.store.get(self.key(run_id, step_name))
        if raw is None:
            return None
        return json.loads(raw)["output"]

    async def has(self, run_id: str, step_name: str) -> bool:
        return await self.store.get(self.key(run_id, step_name)) is not None

    async def record(self, run_id: str, step_name: str, output: Any) -> None:
        await self.store.put(self.key(run_id, step_name), json.dumps({"output": output}))
        logger.debug(f"Journaled {step_name} for run {run_id}")

    async def clear(self, run_id: str) -> int:
        """Drop every entry of a finished run. Returns how many entries were removed."""
        keys = await self.store.list_keys(self.key(run_id, ""))
        for key in keys:
            await self.store.delete(key)
        logger.info(f"Cleared {len(keys)} journal entries for run {run_id}")
        return len(keys)
