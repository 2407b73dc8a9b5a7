import zipfile

import pytest

from fabriclog.domain import UNINITIALIZED_ID, NodeType
from fabriclog.parser import (
    ParsedLog,
    ParseError,
    SwInfoEntry,
    nullable_string,
    parse_info_file,
    parse_int_or_zero,
    parse_log,
    parse_nodes,
    parse_ports,
    parse_sys_info,
    parse_zip,
)

HOST_GUID = "0x0000000000000a01"
SWITCH_GUID = "0x0000000000000b01"

NODES_HEADER = "NodeDesc,NumPorts,NodeType,ClassVersion,BaseVersion,SystemImageGUID,NodeGUID"
SYS_HEADER = "NodeGUID,SerialNumber,PartNumber,Revision,ProductName"


def port_line(guid, num="1", lid="5", state="4"):
    fields = ["x"] * 21
    fields[1] = guid
    fields[2] = num
    fields[6] = lid
    fields[20] = state
    return ",".join(fields)


def dump_text():
    return "\n".join(
        [
            "garbage before sections",
            "START_NODES",
            NODES_HEADER,
            f'"host-a HCA-1",1,1,1,1,0x0000000000000a00,{HOST_GUID}',
            f"switch-b,36,2,1,1,0x0000000000000b00,{SWITCH_GUID}",
            "END_NODES",
            "",
            "START_SYSTEM_GENERAL_INFORMATIONS",
            SYS_HEADER,
            f"{HOST_GUID},SN0000TEST,N/A,A1,Test Adapter",
            "END_SYSTEM_GENERAL_INFORMATIONS",
            "START_PORTS",
            "PortHeader",
            port_line(HOST_GUID, num="1", lid="5", state="4"),
            port_line(SWITCH_GUID, num="3", lid="bad", state="2"),
            "END_PORTS",
        ]
    ) + "\r\n"


INFO_TEXT = "\n".join(
    [
        "SW_GUID=0000000000000B01",
        "endianness=1",
        "enable_endianness_per_job = 0",
        "reproducibility_disable=not-a-number",
        "---",
    ]
)


def make_zip(tmp_path, files):
    path = tmp_path / "dump.zip"
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return path


@pytest.mark.parametrize(
    "value, expected",
    [("  abc ", "abc"), ("N/A", None), (" N/A ", None), ("", None), ("   ", None)],
)
def test_nullable_string(value, expected):
    assert nullable_string(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(" 42 ", 42), ("-7", -7), ("+3", 3), ("abc", 0), ("1_000", 0), ("", 0), ("4.5", 0)],
)
def test_parse_int_or_zero(value, expected):
    assert parse_int_or_zero(value) == expected


def test_parse_info_file_entries():
    text = INFO_TEXT + "\nSW_GUID=ABCDEF\nendianness=0\n"
    result = parse_info_file(text.splitlines())
    assert result["0000000000000b01"] == SwInfoEntry(
        endianness=1, enable_endianness_per_job=0, reproducibility_disable=None
    )
    assert result["abcdef"] == SwInfoEntry(endianness=0)


def test_parse_info_file_ignores_entries_without_guid():
    assert parse_info_file(["endianness=1", "---"]) == {}


def test_parse_nodes_valid():
    nodes = parse_nodes([NODES_HEADER, f'"host a",2,1,1,1,0x0,{HOST_GUID}'])
    assert len(nodes) == 1
    node = nodes[0]
    assert node.node_guid == HOST_GUID
    assert node.node_desc == "host a"
    assert node.node_type is NodeType.HOST
    assert node.num_ports == 2
    assert node.log_id == UNINITIALIZED_ID
    assert node.info is None


@pytest.mark.parametrize("lines", [[], [NODES_HEADER]])
def test_parse_nodes_empty(lines):
    with pytest.raises(ParseError, match="nodes section is empty or missing header"):
        parse_nodes(lines)


def test_parse_nodes_too_few_fields():
    with pytest.raises(ParseError, match="node line has too few fields"):
        parse_nodes([NODES_HEADER, "a,1,2"])


def test_parse_nodes_bad_numbers():
    with pytest.raises(ParseError, match="parse num ports"):
        parse_nodes([NODES_HEADER, "a,x,1,1,1,0,0x1"])
    with pytest.raises(ParseError, match="parse node type"):
        parse_nodes([NODES_HEADER, "a,1,y,1,1,0,0x1"])


def test_parse_nodes_bad_csv():
    with pytest.raises(ParseError, match="parse node line"):
        parse_nodes([NODES_HEADER, '"unterminated,1,1,1,1,0,0x1'])


def test_parse_sys_info():
    assert parse_sys_info([SYS_HEADER]) == []
    entries = parse_sys_info([SYS_HEADER, f"{HOST_GUID}, SN0000TEST ,N/A,,Adapter"])
    assert entries[0].node_guid == HOST_GUID
    assert entries[0].serial_number == "SN0000TEST"
    assert entries[0].part_number is None
    assert entries[0].revision is None
    assert entries[0].product_name == "Adapter"


def test_parse_sys_info_too_few_fields():
    with pytest.raises(ParseError, match="sysInfo line has too few fields"):
        parse_sys_info([SYS_HEADER, "a,b,c"])


def test_parse_ports():
    ports = parse_ports(["header", port_line(HOST_GUID, num="3", lid="oops", state="")])
    assert len(ports) == 1
    assert ports[0].port_guid == HOST_GUID
    assert ports[0].port_num == 3
    assert ports[0].lid == 0
    assert ports[0].port_state == 0
    assert ports[0].node_id == UNINITIALIZED_ID


def test_parse_ports_errors():
    with pytest.raises(ParseError, match="ports section is empty or missing header"):
        parse_ports(["header"])
    with pytest.raises(ParseError, match="port line has too few fields"):
        parse_ports(["header", "a,b,1"])
    with pytest.raises(ParseError, match="parse port num"):
        parse_ports(["header", port_line(HOST_GUID, num="z")])
    with pytest.raises(ParseError):
        parse_ports(["header", "a,b,1,d,e,f,g"])


def test_parse_log_attaches_system_info():
    result = parse_log(dump_text().splitlines())
    assert isinstance(result, ParsedLog)
    assert [n.node_guid for n in result.nodes] == [HOST_GUID, SWITCH_GUID]
    host, switch = result.nodes
    assert host.info.serial_number == "SN0000TEST"
    assert host.info.part_number is None
    assert host.info.product_name == "Test Adapter"
    assert switch.info is None
    assert switch.node_type is NodeType.SWITCH
    assert [p.port_guid for p in result.ports] == [HOST_GUID, SWITCH_GUID]


def test_parse_log_missing_ports():
    text = f"START_NODES\n{NODES_HEADER}\na,1,1,1,1,0,0x1\nEND_NODES\n"
    with pytest.raises(ParseError, match="parse ports: ports section is empty"):
        parse_log(text.splitlines())


def test_parse_log_missing_nodes():
    with pytest.raises(ParseError, match="parse nodes"):
        parse_log([])


def test_parse_zip_without_info_matches_parse_log(tmp_path):
    path = make_zip(tmp_path, {"fabric.db_csv": dump_text()})
    assert parse_zip(path) == parse_log(dump_text().splitlines())


def test_parse_zip_no_log_file(tmp_path):
    path = make_zip(tmp_path, {"readme.txt": "nothing"})
    with pytest.raises(ParseError, match="no log file found in zip"):
        parse_zip(path)


def test_parse_zip_not_a_zip(tmp_path):
    path = tmp_path / "plain.zip"
    path.write_text("not an archive")
    with pytest.raises(ParseError, match="open zip"):
        parse_zip(path)


def test_parse_zip_missing_file(tmp_path):
    with pytest.raises(ParseError, match="open zip"):
        parse_zip(tmp_path / "absent.zip")


def test_parse_zip_bad_log(tmp_path):
    path = make_zip(tmp_path, {"fabric.db_csv": "START_NODES\nEND_NODES\n"})
    with pytest.raises(ParseError, match="parse log: parse nodes"):
        parse_zip(path)