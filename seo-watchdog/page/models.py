from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class MutationType(Enum):
    CHILD_LIST = "childList"
    ATTRIBUTES = "attributes"
    CHARACTER_DATA = "characterData"


@dataclass(frozen=True)
class MutationRecord:
    """
    One change made to a PageDocument.
    target is the bs4 node the change applies to: the element for
    attributes/childList, the text node for characterData.
    """
    type: MutationType
    target: Any
    attribute_name: Optional[str] = None
    old_value: Optional[str] = None
    added_nodes: List[Any] = field(default_factory=list)
    removed_nodes: List[Any] = field(default_factory=list)
