"""Parsing of zipped fabric diagnostic dumps into nodes and ports."""

from __future__ import annotations

import csv
import io
import re
import zipfile
import zlib
from dataclasses import dataclass, field
from os import PathLike
from typing import Callable, Dict, Iterable, List, Optional, TypeVar, Union

from fabriclog.domain import UNINITIALIZED_ID, Node, NodeInfo, NodeType, Port

_INT_RE = re.compile(r"[+-]?[0-9]+")

T = TypeVar("T")


class ParseError(Exception):
    """Raised when a dump cannot be parsed."""


@dataclass
class SwInfoEntry:
    """Switch settings read from the info file."""

    endianness: Optional[int] = None
    enable_endianness_per_job: Optional[int] = None
    reproducibility_disable: Optional[int] = None


@dataclass
class SysInfoEntry:
    """A row of the system general information section."""

    node_guid: str
    serial_number: Optional[str]
    part_number: Optional[str]
    revision: Optional[str]
    product_name: Optional[str]


@dataclass
class ParsedLog:
    """Nodes and ports found in a dump."""

    nodes: List[Node] = field(default_factory=list)
    ports: List[Port] = field(default_factory=list)


def _atoi(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    return int(text)


def nullable_string(s: str) -> Optional[str]:
    """Strip the value; empty strings and "N/A" become None."""
    s = s.strip()
    if s in ("", "N/A"):
        return None
    return s


def parse_int_or_zero(s: str) -> int:
    """Parse a decimal integer, returning 0 when it is not one."""
    try:
        return _atoi(s.strip())
    except ValueError:
        return 0


def parse_info_file(stream: Iterable[str]) -> Dict[str, SwInfoEntry]:
    """Read per-switch settings, keyed by lower-case switch GUID."""
    result: Dict[str, SwInfoEntry] = {}
    current_guid = ""
    current = SwInfoEntry()

    for raw in stream:
        line = raw.strip()

        if line.startswith("---"):
            if current_guid:
                result[current_guid] = current
                current = SwInfoEntry()
            continue

        if line.startswith("SW_GUID="):
            current_guid = line[len("SW_GUID="):].lower()
            continue

        key, sep, val = line.partition("=")
        if not sep:
            continue
        try:
            value = _atoi(val.strip())
        except ValueError:
            continue

        key = key.strip()
        if key == "endianness":
            current.endianness = value
        elif key == "enable_endianness_per_job":
            current.enable_endianness_per_job = value
        elif key == "reproducibility_disable":
            current.reproducibility_disable = value

    if current_guid:
        result[current_guid] = current
    return result


def _csv_fields(line: str, what: str) -> List[str]:
    try:
        return next(csv.reader([line], strict=True))
    except csv.Error as exc:
        raise ParseError(f"parse {what} line: {exc}") from exc


def _int_field(text: str, what: str) -> int:
    try:
        return _atoi(text.strip())
    except ValueError as exc:
        raise ParseError(f"parse {what}: {exc}") from exc


def parse_nodes(lines: List[str]) -> List[Node]:
    """Parse the NODES section, header line first."""
    if len(lines) < 2:
        raise ParseError("nodes section is empty or missing header")

    nodes = []
    for line in lines[1:]:
        fields = _csv_fields(line, "node")
        if len(fields) < 7:
            raise ParseError(f"node line has too few fields: {line}")
        num_ports = _int_field(fields[1], "num ports")
        node_type = _int_field(fields[2], "node type")
        nodes.append(
            Node.uninitialized(
                UNINITIALIZED_ID,
                fields[6].strip(),
                fields[0].strip(),
                NodeType.from_value(node_type),
                num_ports,
            )
        )
    return nodes


def parse_sys_info(lines: List[str]) -> List[SysInfoEntry]:
    """Parse the SYSTEM_GENERAL_INFORMATIONS section; missing data yields []."""
    if len(lines) < 2:
        return []

    entries = []
    for line in lines[1:]:
        fields = _csv_fields(line, "sysInfo")
        if len(fields) < 5:
            raise ParseError(f"sysInfo line has too few fields: {line}")
        entries.append(
            SysInfoEntry(
                node_guid=fields[0].strip(),
                serial_number=nullable_string(fields[1]),
                part_number=nullable_string(fields[2]),
                revision=nullable_string(fields[3]),
                product_name=nullable_string(fields[4]),
            )
        )
    return entries


def parse_ports(lines: List[str]) -> List[Port]:
    """Parse the PORTS section, header line first."""
    if len(lines) < 2:
        raise ParseError("ports section is empty or missing header")

    ports = []
    for line in lines[1:]:
        fields = _csv_fields(line, "port")
        if len(fields) < 7:
            raise ParseError(f"port line has too few fields: {line}")
        port_num = _int_field(fields[2], "port num")
        if len(fields) < 21:
            raise ParseError(f"port line has no port state field: {line}")
        ports.append(
            Port.uninitialized(
                UNINITIALIZED_ID,
                fields[1].strip(),
                port_num,
                parse_int_or_zero(fields[20]),
                parse_int_or_zero(fields[6]),
            )
        )
    return ports


def parse_log(stream: Iterable[str]) -> ParsedLog:
    """Split a dump into START_/END_ sections and parse nodes and ports."""
    sections: Dict[str, List[str]] = {}
    current = ""

    for raw in stream:
        line = raw.strip()
        if line.startswith("START_"):
            current = line[len("START_"):]
            continue
        if line.startswith("END_"):
            current = ""
            continue
        if current and line:
            sections.setdefault(current, []).append(line)

    try:
        nodes = parse_nodes(sections.get("NODES", []))
    except ParseError as exc:
        raise ParseError(f"parse nodes: {exc}") from exc

    try:
        sys_infos = parse_sys_info(sections.get("SYSTEM_GENERAL_INFORMATIONS", []))
    except ParseError as exc:
        raise ParseError(f"parse system info: {exc}") from exc

    guid_to_info = {info.node_guid: info for info in sys_infos}
    for node in nodes:
        info = guid_to_info.get(node.node_guid)
        if info is not None:
            node.info = NodeInfo(
                serial_number=info.serial_number,
                part_number=info.part_number,
                revision=info.revision,
                product_name=info.product_name,
            )

    try:
        ports = parse_ports(sections.get("PORTS", []))
    except ParseError as exc:
        raise ParseError(f"parse ports: {exc}") from exc

    return ParsedLog(nodes=nodes, ports=ports)


def _parse_member(
    archive: zipfile.ZipFile,
    member: zipfile.ZipInfo,
    parse: Callable[[Iterable[str]], T],
    open_label: str,
    parse_label: str,
    scan_label: str,
) -> T:
    try:
        raw = archive.open(member)
    except (OSError, RuntimeError, NotImplementedError, zipfile.BadZipFile) as exc:
        raise ParseError(f"open {open_label} in zip: {exc}") from exc

    with io.TextIOWrapper(raw, encoding="utf-8", errors="replace", newline="\n") as text:
        try:
            return parse(text)
        except ParseError as exc:
            raise ParseError(f"{parse_label}: {exc}") from exc
        except (OSError, EOFError, zlib.error, zipfile.BadZipFile) as exc:
            raise ParseError(f"{parse_label}: {scan_label}: {exc}") from exc


def parse_zip(path: Union[str, PathLike]) -> ParsedLog:
    """Parse a zipped dump: the *.db_csv log plus an optional info file."""
    try:
        archive = zipfile.ZipFile(path)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ParseError(f"open zip: {exc}") from exc

    with archive:
        log_member: Optional[zipfile.ZipInfo] = None
        info_member: Optional[zipfile.ZipInfo] = None
        for member in archive.infolist():
            name = member.filename.lower()
            if ".sharp_an_info" in name:
                info_member = member
            elif name.endswith(".db_csv"):
                log_member = member

        if log_member is None:
            raise ParseError("no log file found in zip")

        result = _parse_member(
            archive, log_member, parse_log, "log file", "parse log", "scan log file"
        )

        if info_member is not None:
            sw_infos = _parse_member(
                archive,
                info_member,
                parse_info_file,
                "file info",
                "parse info file",
                "scan info file",
            )
            for node in result.nodes:
                key = node.node_guid.removeprefix("0x").lower()
                sw = sw_infos.get(key)
                if sw is None:
                    continue
                if node.info is None:
                    node.info = NodeInfo()
                node.info.endianness = sw.endianness
                node.info.enable_endianness_per_job = sw.enable_endianness_per_job
                node.info.reproducibility_disable = sw.reproducibility_disable

    return result