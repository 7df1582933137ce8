[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ezsock"
version = "1.0.0"
description = "Small networking toolkit: packet header codecs, hex dumps, pcap recording, a packet sniffer, a TCP dump server and WebSocket console helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "networking",
    "sniffer",
    "pcap",
    "hexdump",
    "rtp",
    "tcp",
    "udp",
    "icmp",
    "websocket",
    "console",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: System :: Networking :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ezsock-sniff = "ezsock.sniffer:main"
ezsock-dumpserver = "ezsock.dumpserver:main"

[tool.hatch.build.targets.wheel]
packages = ["ezsock"]

[tool.hatch.build.targets.sdist]
include = ["ezsock", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
