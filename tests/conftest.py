import pytest

from rarctool.tree.models import Directory, File


@pytest.fixture
def sample_tree() -> Directory:
    """archive/{a.bin, sub/{b.txt}, c} with the subdirectory listed between the files."""
    return Directory(
        "archive",
        [
            File("a", ".bin", b"AAA"),
            Directory("sub", [File("b", ".txt", b"hello")]),
            File("c", "", b""),
        ],
    )


@pytest.fixture
def nested_tree() -> Directory:
    return Directory(
        "scene",
        [
            Directory(
                "map",
                [
                    File("room", ".bmd", bytes(range(200))),
                    Directory("tex", [File("wall", ".bti", b"\x00\x01" * 50)]),
                ],
            ),
            Directory("snd", [File("bgm", ".aw", b"music" * 30)]),
            File("stage", ".dzs", b"STAGEDATA"),
        ],
    )
