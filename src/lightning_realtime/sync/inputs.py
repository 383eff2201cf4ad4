"""
Input Store
===========

Explicit container for the user-editable parameters: prompt and seed.

Two independent writers touch the seed (the user and the SeedRotator);
only the user touches the prompt. Each field is last-write-wins on its own,
so a rotator tick during a prompt edit keeps the new prompt and the new seed.

Design Rules:
    - Single event loop; no locking
    - Every write bumps the revision and notifies listeners synchronously
    - Listeners receive an immutable InputSnapshot
"""

import logging
from typing import Callable, List, Union

from lightning_realtime.models.state import InputSnapshot, InputWriter
from lightning_realtime.sync.seed import parse_seed


logger = logging.getLogger(__name__)


InputListener = Callable[[InputSnapshot], None]


class InputStore:
    """
    Prompt + SeedState with last-write-wins semantics.

    Example:
        store = InputStore(prompt="P", seed=123)
        store.subscribe(synchronizer.on_input_changed)
        store.set_prompt("Q")                          # USER write
        store.set_seed(991, writer=InputWriter.ROTATOR)
    """

    def __init__(self, prompt: str, seed: Union[int, str]) -> None:
        self._prompt = prompt
        self._seed = parse_seed(seed)
        self._revision = 0
        self._writer = InputWriter.INITIAL
        self._changed = "init"
        self._listeners: List[InputListener] = []

    @property
    def prompt(self) -> str:
        return self._prompt

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def revision(self) -> int:
        return self._revision

    def snapshot(self) -> InputSnapshot:
        """Current values as an immutable snapshot."""
        return InputSnapshot(
            prompt=self._prompt,
            seed=self._seed,
            revision=self._revision,
            writer=self._writer,
            changed=self._changed,
        )

    def subscribe(self, listener: InputListener) -> Callable[[], None]:
        """
        Register a listener called after every write.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_prompt(self, prompt: str, writer: InputWriter = InputWriter.USER) -> InputSnapshot:
        """Write the prompt and notify listeners."""
        self._prompt = prompt
        return self._commit(writer, "prompt")

    def set_seed(
        self,
        seed: Union[int, str],
        writer: InputWriter = InputWriter.USER,
    ) -> InputSnapshot:
        """
        Write the seed and notify listeners.

        Raises:
            ValueError: If `seed` is not a non-negative integer; state unchanged
        """
        self._seed = parse_seed(seed)
        return self._commit(writer, "seed")

    def _commit(self, writer: InputWriter, changed: str) -> InputSnapshot:
        self._revision += 1
        self._writer = writer
        self._changed = changed
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot
