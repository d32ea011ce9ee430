[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "peershare"
version = "0.1.0"
description = "Small file-sharing tools: a direct client/server transfer pair and a peer-to-peer network with a central file index over TCP or UDP"
requires-python = ">=3.10"
dependencies = []
keywords = ["file sharing", "peer-to-peer", "p2p", "tcp", "udp", "sockets", "file transfer"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
peershare-index = "peershare.index_server:main"
peershare-server = "peershare.direct_server:main"
peershare-client = "peershare.direct_client:main"
peershare-peer-tcp = "peershare.peer_tcp:main"
peershare-peer-udp = "peershare.peer_udp:main"

[tool.setuptools]
packages = ["peershare"]

[tool.pytest.ini_options]
addopts = "-ra"
