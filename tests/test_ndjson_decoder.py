"""Property-based tests for NDJSON framing over arbitrarily chunked streams."""

import json

from hypothesis import given, settings, strategies as st

from player_finder.services.ndjson import NdjsonDecoder


player_counts = st.lists(st.integers(min_value=1, max_value=12), max_size=6)

wire_records = st.fixed_dictionaries(
    {"id": st.text(min_size=1, max_size=12)},
    optional={"bestWith": player_counts, "recommendedWith": player_counts},
)


def encode(records: list[dict], blank_lines: list[bool]) -> bytes:
    """Serialize records as NDJSON, optionally interleaving blank lines."""
    lines = []
    for record, add_blank in zip(records, blank_lines):
        lines.append(json.dumps(record, ensure_ascii=False))
        if add_blank:
            lines.append("   ")
    return ("\n".join(lines) + "\n").encode("utf-8")


def split_at(payload: bytes, cuts: list[int]) -> list[bytes]:
    points = sorted(set(cuts))
    chunks = []
    start = 0
    for point in points:
        chunks.append(payload[start:point])
        start = point
    chunks.append(payload[start:])
    return chunks


def decode_all(chunks: list[bytes]) -> list[str]:
    decoder = NdjsonDecoder()
    lines = []
    for chunk in chunks:
        lines.extend(decoder.feed(chunk))
    lines.extend(decoder.flush())
    return lines


@st.composite
def chunked_payloads(draw: st.DrawFn) -> tuple[list[dict], bytes, list[bytes]]:
    records = draw(st.lists(wire_records, max_size=8))
    blanks = draw(st.lists(st.booleans(), min_size=len(records), max_size=len(records)))
    payload = encode(records, blanks)
    cuts = draw(st.lists(st.integers(min_value=0, max_value=len(payload)), max_size=20))
    return records, payload, split_at(payload, cuts)


@given(chunked_payloads())
@settings(deadline=2000)
def test_chunking_does_not_change_records(case: tuple[list[dict], bytes, list[bytes]]) -> None:
    """The same records come out however the byte stream is chunked."""
    records, payload, chunks = case

    assert [json.loads(line) for line in decode_all(chunks)] == records
    assert decode_all([payload]) == decode_all(chunks)


@given(chunked_payloads())
@settings(deadline=2000)
def test_one_byte_chunks_match_single_chunk(case: tuple[list[dict], bytes, list[bytes]]) -> None:
    records, payload, _ = case
    one_byte = [payload[i:i + 1] for i in range(len(payload))]

    assert decode_all(one_byte) == decode_all([payload])
    assert len(decode_all(one_byte)) == len(records)


@given(st.integers(min_value=0, max_value=len(b'{"id":"A","bestWith":[2]}\n')))
def test_record_split_inside_json_is_emitted_once(offset: int) -> None:
    payload = b'{"id":"A","bestWith":[2]}\n'
    decoder = NdjsonDecoder()

    first = decoder.feed(payload[:offset])
    second = decoder.feed(payload[offset:])

    assert first == []
    assert second == ['{"id":"A","bestWith":[2]}']
    assert decoder.flush() == []


def test_incomplete_line_is_retained() -> None:
    decoder = NdjsonDecoder()

    assert decoder.feed(b'{"id":"1"}\n{"id":') == ['{"id":"1"}']
    assert decoder.pending == '{"id":'
    assert decoder.feed(b'"2"}\n') == ['{"id":"2"}']
    assert decoder.pending == ""


def test_blank_and_whitespace_lines_are_ignored() -> None:
    decoder = NdjsonDecoder()
    assert decoder.feed(b'\n  \n{"id":"1"}\n\t\n\n{"id":"2"}\n') == ['{"id":"1"}', '{"id":"2"}']


def test_crlf_line_endings() -> None:
    decoder = NdjsonDecoder()
    assert decoder.feed(b'{"id":"1"}\r') == []
    assert decoder.feed(b'\n{"id":"2"}\r\n') == ['{"id":"1"}', '{"id":"2"}']


def test_multibyte_character_split_across_chunks() -> None:
    payload = '{"id":"1","name":"Ögonblick ☃"}\n'.encode("utf-8")
    snowman_start = payload.index("☃".encode("utf-8"))
    decoder = NdjsonDecoder()

    lines = decoder.feed(payload[:snowman_start + 1]) + decoder.feed(payload[snowman_start + 1:])

    assert [json.loads(line)["name"] for line in lines] == ["Ögonblick ☃"]


def test_flush_returns_unterminated_final_line() -> None:
    decoder = NdjsonDecoder()
    assert decoder.feed(b'{"id":"1"}\n{"id":"2"}') == ['{"id":"1"}']
    assert decoder.flush() == ['{"id":"2"}']
    assert decoder.flush() == []


def test_text_chunks_are_accepted() -> None:
    decoder = NdjsonDecoder()
    assert decoder.feed('{"id":"1"}\n{"id"') == ['{"id":"1"}']
    assert decoder.feed(':"2"}\n') == ['{"id":"2"}']
