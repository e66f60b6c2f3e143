"""
Mutation observer for PageDocument.
Mirrors the browser MutationObserver: records are queued per observer and the
callback receives them in batches, never one at a time.
"""

import threading
from typing import Callable, List

from page.models import MutationRecord, MutationType


class MutationObserver:
    """
    Subscriber registered against a PageDocument.
    The callback is invoked with (records, observer) once per delivered batch.
    """

    def __init__(self, callback: Callable[[List[MutationRecord], "MutationObserver"], None]):
        self._callback = callback
        self._records: List[MutationRecord] = []
        self._lock = threading.Lock()
        self._document = None
        self._options = {}

    def observe(
        self,
        document,
        child_list=False,
        attributes=False,
        attribute_old_value=False,
        character_data=False,
        character_data_old_value=False,
        subtree=False,
    ):
        if not (child_list or attributes or character_data):
            raise ValueError("observe() needs at least one of child_list, attributes or character_data")
        if self._document is not None and self._document is not document:
            self.disconnect()

        self._options = {
            "child_list": child_list,
            "attributes": attributes,
            "attribute_old_value": attribute_old_value,
            "character_data": character_data,
            "character_data_old_value": character_data_old_value,
            "subtree": subtree,
        }
        self._document = document
        document._register(self)

    def disconnect(self):
        """Stop receiving records and drop anything still queued."""
        if self._document is not None:
            self._document._unregister(self)
            self._document = None
        with self._lock:
            self._records.clear()

    def take_records(self) -> List[MutationRecord]:
        with self._lock:
            records, self._records = self._records, []
        return records

    @property
    def connected(self) -> bool:
        return self._document is not None

    def _wants(self, record: MutationRecord) -> bool:
        opts = self._options
        if record.type is MutationType.CHILD_LIST:
            return opts.get("child_list", False)
        if record.type is MutationType.ATTRIBUTES:
            return opts.get("attributes", False)
        return opts.get("character_data", False)

    def _enqueue(self, record: MutationRecord):
        if not self._wants(record):
            return
        opts = self._options
        # Strip old values the observer did not ask for
        if record.type is MutationType.ATTRIBUTES and not opts.get("attribute_old_value"):
            record = MutationRecord(record.type, record.target, record.attribute_name)
        elif record.type is MutationType.CHARACTER_DATA and not opts.get("character_data_old_value"):
            record = MutationRecord(record.type, record.target)
        with self._lock:
            self._records.append(record)

    def _deliver(self):
        records = self.take_records()
        if records:
            self._callback(records, self)
