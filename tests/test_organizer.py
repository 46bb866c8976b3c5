import threading
from pathlib import Path

import pytest

from models import BibliographicRecord
from organizer import FileOrganizer, TransferMode, clean_name, target_filename


def _record(path: Path) -> BibliographicRecord:
    return BibliographicRecord(
        author="Kernighan, Brian W.",
        title="The C programming language: ANSI C",
        low_year=1978,
        high_year=1988,
        isbn="0131103628",
        filepath=str(path),
    )


def test_clean_name() -> None:
    assert clean_name("Kernighan, Brian W.") == "Kernighan_Brian_W"
    assert clean_name("Title: Sub-title's | part") == "Title-_Subtitles__part"


def test_target_filename_keeps_extension(tmp_path: Path) -> None:
    name = target_filename(_record(tmp_path / "kr.PDF"))
    assert name == "0131103628_The_C_programming_language-_ANSI_C_Kernighan_Brian_W.PDF"


def test_copy_leaves_source(tmp_path: Path) -> None:
    source = tmp_path / "kr.pdf"
    source.write_bytes(b"pdf")
    target = FileOrganizer(tmp_path / "out", TransferMode.COPY).organize(_record(source))
    assert source.exists()
    assert target.read_bytes() == b"pdf"


def test_move_removes_source(tmp_path: Path) -> None:
    source = tmp_path / "kr.pdf"
    source.write_bytes(b"pdf")
    target = FileOrganizer(tmp_path / "out", TransferMode.MOVE).organize(_record(source))
    assert not source.exists()
    assert target.exists()


def test_dry_run_touches_nothing(tmp_path: Path) -> None:
    source = tmp_path / "kr.pdf"
    source.write_bytes(b"pdf")
    target = FileOrganizer(tmp_path / "out", TransferMode.DRY_RUN).organize(_record(source))
    assert not target.exists()
    assert not (tmp_path / "out").exists()


def test_existing_target_not_overwritten(tmp_path: Path) -> None:
    source = tmp_path / "kr.pdf"
    source.write_bytes(b"new")
    organizer = FileOrganizer(tmp_path / "out", TransferMode.COPY)
    target = organizer.organize(_record(source))
    with pytest.raises(FileExistsError):
        organizer.organize(_record(source))
    assert target.read_bytes() == b"new"


def test_move_refuses_existing_target(tmp_path: Path) -> None:
    source = tmp_path / "kr.pdf"
    source.write_bytes(b"new")
    out = tmp_path / "out"
    out.mkdir()
    existing = out / target_filename(_record(source))
    existing.write_bytes(b"old")

    with pytest.raises(FileExistsError):
        FileOrganizer(out, TransferMode.MOVE).organize(_record(source))

    assert source.read_bytes() == b"new"
    assert existing.read_bytes() == b"old"


def test_failed_copy_leaves_no_target(tmp_path: Path) -> None:
    out = tmp_path / "out"
    record = _record(tmp_path / "missing.pdf")

    with pytest.raises(FileNotFoundError):
        FileOrganizer(out, TransferMode.COPY).organize(record)

    assert list(out.iterdir()) == []


def test_concurrent_copies_to_same_target(tmp_path: Path) -> None:
    first = tmp_path / "a" / "kr.pdf"
    second = tmp_path / "b" / "kr.pdf"
    for path, content in ((first, b"first"), (second, b"second")):
        path.parent.mkdir()
        path.write_bytes(content)
    organizer = FileOrganizer(tmp_path / "out", TransferMode.COPY)
    barrier = threading.Barrier(2)
    placed: list[Path] = []
    refused: list[Exception] = []
    lock = threading.Lock()

    def worker(source: Path) -> None:
        barrier.wait()
        try:
            target = organizer.organize(_record(source))
        except FileExistsError as exc:
            with lock:
                refused.append(exc)
        else:
            with lock:
                placed.append(target)

    threads = [threading.Thread(target=worker, args=(path,)) for path in (first, second)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(placed) == 1
    assert len(refused) == 1
    assert placed[0].read_bytes() in (b"first", b"second")
