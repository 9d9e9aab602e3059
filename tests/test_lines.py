from pathlib import Path

from collectors.lines import iter_lines, iter_lines_reversed


def test_iter_lines_strips_newlines(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    path.write_bytes(b"one\r\ntwo\nthree")
    assert list(iter_lines(path)) == ["one", "two", "three"]


def test_reversed_small_chunks_match_forward_order(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    lines = [f'{{"n": {i}, "text": "café {i}"}}' for i in range(50)]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    backwards = [line for line in iter_lines_reversed(path, chunk_size=7) if line]
    assert backwards == list(reversed(lines))


def test_reversed_without_trailing_newline(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    path.write_text("a\nb\nc")
    assert list(iter_lines_reversed(path, chunk_size=2)) == ["c", "b", "a"]


def test_reversed_empty_file(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    path.write_text("")
    assert [line for line in iter_lines_reversed(path) if line] == []


def test_reversed_stops_early(tmp_path: Path):
    path = tmp_path / "log.jsonl"
    path.write_text("\n".join(str(i) for i in range(1000)) + "\n")
    it = iter_lines_reversed(path, chunk_size=16)
    assert next(it) == ""
    assert next(it) == "999"
    assert next(it) == "998"
    it.close()
