"""
In-process HTML document with a DOM-style mutation API.
Every change made through the API is recorded and delivered to observers in
batches. Whole-document replacement is not observable, as with a browser
document swap.
"""

import threading
from contextlib import contextmanager
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag

from page.models import MutationRecord, MutationType


def _attr_text(value) -> Optional[str]:
    # bs4 keeps multi-valued attributes (rel, class) as lists
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


class PageDocument:
    """
    Parsed page plus the observers subscribed to it.
    Reads and writes are serialized by `lock`; observer callbacks run after
    the lock is released.
    """

    def __init__(self, html: str, url: str):
        self.url = url
        self.soup = BeautifulSoup(html or "", "html.parser")
        self.lock = threading.RLock()
        self._observers = []
        self._batch_depth = 0

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------
    @property
    def head(self) -> Optional[Tag]:
        return self.soup.find("head")

    @property
    def body(self) -> Optional[Tag]:
        return self.soup.find("body")

    def find(self, *args, **kwargs):
        with self.lock:
            return self.soup.find(*args, **kwargs)

    def find_all(self, *args, **kwargs):
        with self.lock:
            return self.soup.find_all(*args, **kwargs)

    def select(self, selector: str):
        with self.lock:
            return self.soup.select(selector)

    def select_one(self, selector: str):
        with self.lock:
            return self.soup.select_one(selector)

    def create_element(self, tag_name: str, text: Optional[str] = None, attrs: Optional[dict] = None, **kwattrs) -> Tag:
        """Detached element; attach it with append_child."""
        merged = dict(attrs or {})
        merged.update(kwattrs)
        tag = self.soup.new_tag(tag_name, attrs=merged)
        if text is not None:
            tag.string = text
        return tag

    def create_fragment(self, html: str) -> List[Tag]:
        """Parse markup into detached top-level elements."""
        fragment = BeautifulSoup(html, "html.parser")
        return [node.extract() for node in list(fragment.contents) if isinstance(node, Tag)]

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------
    def set_attribute(self, node: Tag, name: str, value: str):
        with self.lock:
            old = _attr_text(node.get(name))
            node[name] = value
            self._record(MutationRecord(MutationType.ATTRIBUTES, node, attribute_name=name, old_value=old))
        self._maybe_flush()

    def remove_attribute(self, node: Tag, name: str):
        with self.lock:
            if name not in node.attrs:
                return
            old = _attr_text(node.get(name))
            del node[name]
            self._record(MutationRecord(MutationType.ATTRIBUTES, node, attribute_name=name, old_value=old))
        self._maybe_flush()

    def set_text(self, element: Tag, text: str):
        """Replace all children with one text node (textContent assignment)."""
        with self.lock:
            removed = [child.extract() for child in list(element.contents)]
            added = []
            if text:
                node = NavigableString(text)
                element.append(node)
                added.append(node)
            self._record(MutationRecord(MutationType.CHILD_LIST, element, added_nodes=added, removed_nodes=removed))
        self._maybe_flush()

    def set_data(self, text_node: NavigableString, data: str) -> NavigableString:
        """Change a text node in place; returns the node now in the tree."""
        with self.lock:
            old = str(text_node)
            replacement = NavigableString(data)
            text_node.replace_with(replacement)
            self._record(MutationRecord(MutationType.CHARACTER_DATA, replacement, old_value=old))
        self._maybe_flush()
        return replacement

    def append_child(self, parent: Tag, child):
        with self.lock:
            parent.append(child)
            self._record(MutationRecord(MutationType.CHILD_LIST, parent, added_nodes=[child]))
        self._maybe_flush()
        return child

    def remove(self, node):
        with self.lock:
            parent = node.parent
            if parent is None:
                return
            node.extract()
            self._record(MutationRecord(MutationType.CHILD_LIST, parent, removed_nodes=[node]))
        self._maybe_flush()

    def replace_content(self, html: str, url: Optional[str] = None):
        """Swap the whole document. Observers are not notified."""
        with self.lock:
            self.soup = BeautifulSoup(html or "", "html.parser")
            if url:
                self.url = url

    @contextmanager
    def batch(self):
        """Coalesce every mutation made inside the block into one delivery."""
        with self.lock:
            self._batch_depth += 1
        try:
            yield self
        finally:
            with self.lock:
                self._batch_depth -= 1
                done = self._batch_depth == 0
            if done:
                self.flush()

    def flush(self):
        """Deliver queued records to every observer."""
        with self.lock:
            observers = list(self._observers)
        for observer in observers:
            observer._deliver()

    # ------------------------------------------------------------
    # Observer registry
    # ------------------------------------------------------------
    def _register(self, observer):
        with self.lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def _unregister(self, observer):
        with self.lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _record(self, record: MutationRecord):
        for observer in self._observers:
            observer._enqueue(record)

    def _maybe_flush(self):
        with self.lock:
            pending = self._batch_depth == 0
        if pending:
            self.flush()
