"""@mention handling for collaboration posts"""
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

MENTION_RE = re.compile(r"@([A-Za-z0-9_]+)")


@dataclass
class MentionInfo:
    handle: str
    full_name: str
    user_id: int
    email: str


def extract_mentions(content: Optional[str]) -> List[str]:
    """Unique handles in order of first appearance"""
    handles: List[str] = []
    for handle in MENTION_RE.findall(content or ""):
        if handle not in handles:
            handles.append(handle)
    return handles


def _matches(handle: str, name: str, email: str) -> bool:
    handle = handle.lower()
    full_name = (name or "").lower().strip()
    parts = full_name.split()
    if len(parts) >= 2 and f"{parts[0]}{parts[-1][0]}" == handle:
        return True
    if re.sub(r"\s+", "", full_name) == handle:
        return True
    if (email or "").lower().split("@")[0] == handle:
        return True
    return full_name == handle


def resolve_mentions(handles: Iterable[str], members: Iterable) -> List[MentionInfo]:
    """Match handles against members (anything with id, name and email attributes)"""
    members = list(members)
    resolved: List[MentionInfo] = []
    for handle in handles:
        for member in members:
            if _matches(handle, member.name, member.email):
                resolved.append(MentionInfo(handle=handle, full_name=member.name, user_id=member.id, email=member.email))
                break
    return resolved


def get_user_mention_handle(user) -> str:
    parts = (user.name or "").split()
    if len(parts) >= 2:
        return f"{parts[0]}{parts[-1][0]}"
    return re.sub(r"\s+", "", user.name or "")
