from __future__ import annotations

import hashlib
from typing import Any, Iterable, Mapping

from .models import (
    Entry,
    LifecycleState,
    PortBinding,
    ResourceGroup,
    ResourceRecord,
    Row,
    Snapshot,
)
from ..util import DEFAULT_GROUP_LABEL


def _hash8(name: str) -> str:
    return hashlib.sha1(name.encode()).hexdigest()[:8]


def group_token(name: str) -> str:
    """Group ids only need to be unique per snapshot; deriving them from the name keeps aggregation deterministic."""
    return f"stack-{_hash8(name)}"


def parse_labels(raw: Any) -> dict[str, str]:
    """Docker CLI prints labels as 'k=v,k2=v2'; the engine API gives a mapping."""
    if isinstance(raw, Mapping):
        return {str(k): str(v) for k, v in raw.items()}
    if not isinstance(raw, str) or not raw:
        return {}
    labels: dict[str, str] = {}
    last_key: str | None = None
    for part in raw.split(","):
        if "=" in part:
            k, v = part.split("=", 1)
            labels[k] = v
            last_key = k
        elif last_key is not None:
            # a comma inside the previous value
            labels[last_key] += "," + part
    return labels


def _split_container_port(text: str) -> tuple[str, str]:
    port, _, proto = text.strip().partition("/")
    return port, proto or "tcp"


def parse_ports(raw: Any) -> tuple[PortBinding, ...]:
    """Parse '0.0.0.0:8080->80/tcp, :::8080->80/tcp, 443/tcp' (or API port dicts)."""
    if isinstance(raw, list):
        out = []
        for p in raw:
            if not isinstance(p, Mapping):
                continue
            public = p.get("PublicPort")
            out.append(
                PortBinding(
                    container_port=str(p.get("PrivatePort") or ""),
                    protocol=str(p.get("Type") or "tcp"),
                    host_ip=str(p.get("IP") or ""),
                    host_port=str(public) if public else "",
                )
            )
        return tuple(out)
    if not isinstance(raw, str) or not raw.strip():
        return ()
    out = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if "->" in part:
            host, _, target = part.partition("->")
            host_ip, _, host_port = host.rpartition(":")
            port, proto = _split_container_port(target)
            out.append(PortBinding(port, proto, host_ip, host_port))
        else:
            port, proto = _split_container_port(part)
            out.append(PortBinding(port, proto))
    return tuple(out)


def format_ports(ports: Iterable[PortBinding]) -> str:
    parts = []
    for p in ports:
        target = f"{p.container_port}/{p.protocol}"
        if p.host_port:
            parts.append(f"{p.host_ip}:{p.host_port}->{target}")
        else:
            parts.append(target)
    return ", ".join(parts)


def _display_name(raw_names: Any, resource_id: str) -> str:
    if isinstance(raw_names, list):
        raw_names = raw_names[0] if raw_names else ""
    name = str(raw_names or "").split(",")[0].strip().lstrip("/")
    return name or resource_id[:12] or "?"


def parse_ps_row(raw: Mapping[str, Any], group_label: str = DEFAULT_GROUP_LABEL) -> ResourceRecord:
    """Map one `docker ps --format '{{json .}}'` row to a record.

    Missing optional fields default to empty / Unknown instead of failing.
    """
    rid = str(raw.get("ID") or raw.get("Id") or "")
    labels = parse_labels(raw.get("Labels"))
    group = labels.get(group_label) or None
    return ResourceRecord(
        id=rid,
        display_name=_display_name(raw.get("Names"), rid),
        image_ref=str(raw.get("Image") or ""),
        port_bindings=parse_ports(raw.get("Ports")),
        status_text=str(raw.get("Status") or ""),
        lifecycle_state=LifecycleState.parse(raw.get("State")),
        group_key=group,
    )


def entry_name(entry: Entry) -> str:
    if isinstance(entry, ResourceGroup):
        return entry.name
    return entry.display_name


def aggregate(records: Iterable[ResourceRecord]) -> Snapshot:
    """Group records by group_key and sort the top level by name.

    Both sorts are stable, so equal names keep encounter order.
    """
    order: list[ResourceRecord | str] = []
    grouped: dict[str, list[ResourceRecord]] = {}
    for rec in records:
        if rec.group_key:
            if rec.group_key not in grouped:
                grouped[rec.group_key] = []
                order.append(rec.group_key)
            grouped[rec.group_key].append(rec)
        else:
            order.append(rec)

    entries: list[Entry] = []
    for item in order:
        if isinstance(item, str):
            members = sorted(grouped[item], key=lambda r: r.display_name)
            entries.append(ResourceGroup(group_id=group_token(item), name=item, members=tuple(members)))
        else:
            entries.append(item)
    entries.sort(key=entry_name)
    return tuple(entries)


def aggregate_rows(rows: Iterable[Mapping[str, Any]], group_label: str = DEFAULT_GROUP_LABEL) -> Snapshot:
    return aggregate(parse_ps_row(r, group_label) for r in rows)


def is_active(entry: Entry) -> bool:
    return entry.active


def flatten_rows(snapshot: Snapshot, expanded: set[str] | frozenset[str]) -> list[Row]:
    rows: list[Row] = []
    for top, entry in enumerate(snapshot):
        if isinstance(entry, ResourceGroup):
            rows.append(Row(entry, 0, None, top, None))
            if entry.name in expanded:
                for ci, member in enumerate(entry.members):
                    rows.append(Row(member, 1, entry.name, top, ci))
        else:
            rows.append(Row(entry, 0, None, top, None))
    return rows


def find_record(snapshot: Snapshot, resource_id: str) -> ResourceRecord | None:
    for entry in snapshot:
        if isinstance(entry, ResourceGroup):
            for m in entry.members:
                if m.id == resource_id:
                    return m
        elif entry.id == resource_id:
            return entry
    return None
