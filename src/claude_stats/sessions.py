"""Group a flat stream of prompt events into sessions.

A new session starts when:
1. the explicit session id changes (including to or from "none"),
2. the project changes, or
3. the gap since the previous prompt exceeds the idle threshold.

Explicit ids come first; the other two rules cover history written
without session ids.

An explicit id belongs to the first project it is seen on. Sessions that
reuse it on another project are stored under a project-scoped id so that
every stored session holds prompts from a single project.
"""

import hashlib
from typing import Iterable, Mapping

from .core import Event, Session, ms_to_datetime

DEFAULT_IDLE_GAP_MS = 30 * 60 * 1000


class _Accumulator:
    """The currently open session while walking sorted events."""

    def __init__(self, event: Event):
        self.session_id = event.session_id
        self.project = event.project
        self.start_ms = event.timestamp
        self.end_ms = event.timestamp
        self.events = [event]

    def accepts(self, event: Event, idle_gap_ms: int) -> bool:
        return (
            event.session_id == self.session_id
            and event.project == self.project
            and event.timestamp - self.end_ms <= idle_gap_ms
        )

    def add(self, event: Event) -> None:
        self.end_ms = event.timestamp
        self.events.append(event)

    def finalize(self, session_id: str) -> Session:
        return Session(
            session_id=session_id,
            project=self.project,
            start_time=ms_to_datetime(self.start_ms),
            end_time=ms_to_datetime(self.end_ms),
            prompt_count=len(self.events),
            duration_ms=self.end_ms - self.start_ms,
            first_prompt=self.events[0].content,
            last_prompt=self.events[-1].content,
        )


def group_into_sessions(
    events: Iterable[Event],
    idle_gap_ms: int = DEFAULT_IDLE_GAP_MS,
    owners: Mapping[str, str] | None = None,
) -> list[Session]:
    """Split events into sessions, ordered by start time.

    ``owners`` maps explicit session ids already claimed by a project, as
    stored by an earlier sync.
    """
    ordered = sorted(events, key=lambda e: e.timestamp)
    if not ordered:
        return []

    sessions: list[Session] = []
    used_ids: set[str] = set()
    claimed: dict[str, str] = dict(owners or {})
    current: _Accumulator | None = None

    for event in ordered:
        if current is not None and current.accepts(event, idle_gap_ms):
            current.add(event)
            continue

        if current is not None:
            sessions.append(current.finalize(_session_id_for(current, used_ids, claimed)))
        current = _Accumulator(event)

    sessions.append(current.finalize(_session_id_for(current, used_ids, claimed)))
    return sessions


def synthesize_session_id(project: str, start_ms: int) -> str:
    """Build a stable id for a session that has no explicit one."""
    return f"auto-{start_ms}-{_project_digest(project)}"


def find_owning_session(event: Event, sessions: list[Session]) -> Session | None:
    """Return the session whose time span and project contain the event."""
    when = event.time
    for session in sessions:
        if session.project != event.project:
            continue
        if not (session.start_time <= when <= session.end_time):
            continue
        if event.session_id is not None and session.session_id not in (
            event.session_id,
            scoped_session_id(event.session_id, event.project),
        ):
            continue
        return session
    return None


def scoped_session_id(session_id: str, project: str) -> str:
    """Store id for an explicit session id reused on a second project."""
    return f"{session_id}:{_project_digest(project)}"


def _project_digest(project: str) -> str:
    return hashlib.sha1(project.encode("utf-8")).hexdigest()[:8]


def _session_id_for(acc: _Accumulator, used_ids: set[str], claimed: dict[str, str]) -> str:
    if acc.session_id:
        owner = claimed.setdefault(acc.session_id, acc.project)
        sid = acc.session_id if owner == acc.project else scoped_session_id(acc.session_id, acc.project)
        used_ids.add(sid)
        return sid

    base = synthesize_session_id(acc.project, acc.start_ms)
    candidate = base
    n = 1
    while candidate in used_ids:
        candidate = f"{base}-{n}"
        n += 1
    used_ids.add(candidate)
    return candidate
