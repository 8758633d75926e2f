import pytest

from arkade.watcher import ParsePortError, PortInfo, Protocol, format_ports, parse_ports


@pytest.mark.parametrize("text, expected", [
    ("25565/tcp,34197/udp", [PortInfo.tcp(25565), PortInfo.udp(34197)]),
    ("80/TCP", [PortInfo.tcp(80)]),
    (" 53 / Udp , 443/tcp ", [PortInfo.udp(53), PortInfo.tcp(443)]),
    ("0/tcp,65535/udp", [PortInfo.tcp(0), PortInfo.udp(65535)]),
    ("80/tcp,80/tcp", [PortInfo.tcp(80), PortInfo.tcp(80)]),
    ("", []),
    ("   ", []),
])
def test_parse_ports(text: str, expected: list[PortInfo]) -> None:
    assert parse_ports(text) == expected


@pytest.mark.parametrize("text, message, token", [
    ("80", "invalid port specification", "80"),
    ("80/sctp", "invalid protocol", "sctp"),
    ("65536/tcp", "port out of range", "65536"),
    ("-1/tcp", "invalid port specification", "-1/tcp"),
    ("tcp/80", "invalid port specification", "tcp/80"),
    ("80/tcp,,53/udp", "invalid port specification", ""),
    ("80/tcp,", "invalid port specification", ""),
    ("80/tcp/udp", "invalid port specification", "80/tcp/udp"),
    ("8 0/tcp", "invalid port specification", "8 0/tcp"),
])
def test_parse_ports_errors(text: str, message: str, token: str) -> None:
    with pytest.raises(ParsePortError, match=message) as e:
        parse_ports(text)
    assert e.value.token == token


def test_parse_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        parse_ports("nope")


def test_port_info() -> None:
    info = PortInfo("udp", 34197)

    assert info.protocol is Protocol.UDP
    assert str(info) == "34197/udp"
    assert info == PortInfo.udp(34197)
    assert info != PortInfo.tcp(34197)
    assert len({info, PortInfo.udp(34197)}) == 1


@pytest.mark.parametrize("protocol, port, error", [
    ("tcp", 65536, ValueError),
    ("tcp", -1, ValueError),
    ("icmp", 1, ValueError),
    ("tcp", True, TypeError),
    ("tcp", "80", TypeError),
])
def test_port_info_invalid(protocol: str, port: object, error: type[Exception]) -> None:
    with pytest.raises(error):
        PortInfo(protocol, port)  # type: ignore[arg-type]


def test_format_ports() -> None:
    text = "25565/tcp,34197/udp"
    assert format_ports(parse_ports(text)) == text
    assert format_ports([]) == ""


@pytest.mark.parametrize("infos", [
    [PortInfo.tcp(0)],
    [PortInfo.udp(0)],
    [PortInfo.tcp(65535)],
    [PortInfo.udp(65535)],
    [PortInfo.udp(53), PortInfo.tcp(53)],
    [PortInfo.tcp(65535), PortInfo.udp(0), PortInfo.tcp(1), PortInfo.udp(65534)],
])
def test_parse_formatted_ports(infos: list[PortInfo]) -> None:
    assert parse_ports(format_ports(infos)) == infos
    for info in infos:
        assert parse_ports(str(info)) == [info]
