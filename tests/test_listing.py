"""Tests for the listing builder, partitioning and lazy reader."""
import gzip
import random
import struct
import threading

import pytest

from objfeed.config import ListingConfig
from objfeed.core.listing import EntryList, ListingBuilder, split_tasks
from objfeed.core.models import Entry
from objfeed.errors import CorruptedListingError

SAMPLE = [("a/1.csv", 100), ("a/2.csv", 50), ("a/3.csv", 10)]


def all_names(listing):
    return [name for i in range(listing.task_count) for name in listing.get(i)]


def build(items, **kwargs):
    builder = ListingBuilder(**kwargs)
    for name, size in items:
        builder.add(name, size)
    return builder.build()


@pytest.mark.unit
def test_grouping_by_min_task_size():
    listing = build(SAMPLE, min_task_size=120)

    assert listing.task_count == 2
    assert list(listing.get(0)) == ["a/1.csv", "a/2.csv"]
    assert list(listing.get(1)) == ["a/3.csv"]
    assert [[e.size for e in task] for task in listing.tasks] == [[100, 50], [10]]
    assert listing.last_name == "a/3.csv"


@pytest.mark.unit
def test_pattern_is_substring_search():
    listing = build(SAMPLE, path_match_pattern="2")

    assert listing.task_count == 1
    assert listing.tasks[0] == (Entry(index=0, size=50),)
    assert list(listing.get(0)) == ["a/2.csv"]
    assert listing.last_name == "a/2.csv"


@pytest.mark.unit
def test_default_min_task_size_puts_each_entry_in_own_task():
    listing = build(SAMPLE)

    assert listing.task_count == 3
    assert all_names(listing) == [name for name, _ in SAMPLE]


@pytest.mark.unit
def test_add_rejects_non_matching_name():
    builder = ListingBuilder(path_match_pattern=r"\.csv$")

    assert builder.add("a/1.csv", 10) is True
    assert builder.add("a/readme.txt", 10) is False
    assert builder.size() == 1


@pytest.mark.unit
def test_total_file_count_limit():
    builder = ListingBuilder(total_file_count_limit=2)

    assert builder.add("a", 1)
    assert builder.needs_more()
    assert builder.add("b", 1)
    assert not builder.needs_more()
    assert builder.add("c", 1) is False
    assert len(builder) == 2

    listing = builder.build()
    assert all_names(listing) == ["a", "b"]
    assert listing.last_name == "b"


@pytest.mark.unit
def test_round_trip_preserves_names_and_order():
    names = [
        "data/2024/01/part-0000.parquet",
        "zażółć/gęślą/jaźń.txt",
        "",
        "x" * 5000,
        "emoji/🙂.json",
    ]
    listing = build([(name, 7) for name in names])

    assert all_names(listing) == names


@pytest.mark.unit
def test_blob_is_gzip_of_length_prefixed_records():
    listing = build([("c", 1), ("ab", 2)])

    raw = gzip.decompress(listing.blob)

    assert raw == b"\x00\x00\x00\x01c" + b"\x00\x00\x00\x02ab"


@pytest.mark.unit
def test_empty_builder():
    listing = ListingBuilder().build()

    assert listing.tasks == ()
    assert listing.task_count == 0
    assert listing.last_name is None
    assert gzip.decompress(listing.blob) == b""


@pytest.mark.unit
def test_build_twice_and_add_after_build_rejected():
    builder = ListingBuilder()
    builder.add("a", 1)
    builder.build()

    with pytest.raises(RuntimeError):
        builder.build()
    with pytest.raises(RuntimeError):
        builder.add("b", 1)


@pytest.mark.unit
def test_negative_size_rejected():
    with pytest.raises(ValueError):
        ListingBuilder().add("a", -1)


@pytest.mark.unit
def test_from_config():
    config = ListingConfig(
        path_match_pattern="csv", total_file_count_limit=5, min_task_size=1000
    )

    builder = ListingBuilder.from_config(config)

    assert builder.pattern == "csv"
    assert builder.limit_count == 5
    assert builder.min_task_size == 1000


@pytest.mark.unit
@pytest.mark.parametrize("min_task_size", [0, 1, 50, 333, 10_000])
def test_partition_invariant(min_task_size):
    rng = random.Random(min_task_size)
    entries = [Entry(index=i, size=rng.randint(0, 200)) for i in range(200)]

    tasks = split_tasks(entries, min_task_size)

    assert [e for task in tasks for e in task] == entries
    for task in tasks[:-1]:
        assert sum(e.size for e in task) >= min_task_size
    assert all(task for task in tasks)


@pytest.mark.unit
def test_partition_final_task_may_be_single_entry():
    entries = [Entry(0, 100), Entry(1, 100), Entry(2, 1)]

    tasks = split_tasks(entries, 200)

    assert tasks == ((Entry(0, 100), Entry(1, 100)), (Entry(2, 1),))


@pytest.mark.unit
def test_concurrent_adds_keep_indices_contiguous():
    builder = ListingBuilder()
    names_per_thread = 300

    def worker(tid: int) -> None:
        for i in range(names_per_thread):
            builder.add(f"t{tid}/obj-{i:04d}", 10)

    threads = [threading.Thread(target=worker, args=(t,)) for t in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    listing = builder.build()
    entries = [e for task in listing.tasks for e in task]
    assert [e.index for e in entries] == list(range(8 * names_per_thread))

    names = all_names(listing)
    assert sorted(names) == sorted(
        f"t{t}/obj-{i:04d}" for t in range(8) for i in range(names_per_thread)
    )
    # per-thread order survives interleaving
    assert [n for n in names if n.startswith("t3/")] == [
        f"t3/obj-{i:04d}" for i in range(names_per_thread)
    ]


# ========== EntryList ==========


def single_task_listing(count: int = 10):
    return build([(f"obj-{i}", 1) for i in range(count)], min_task_size=10**9)


@pytest.mark.unit
def test_reader_sequential_access_never_rewinds():
    listing = single_task_listing()
    reader = listing.get(0)

    assert [reader[i] for i in range(len(reader))] == [f"obj-{i}" for i in range(10)]
    assert reader.rewinds == 0


@pytest.mark.unit
def test_reader_skipping_forward_does_not_rewind():
    reader = single_task_listing().get(0)

    assert reader[2] == "obj-2"
    assert reader[7] == "obj-7"
    assert reader.rewinds == 0
    assert reader.position == 8


@pytest.mark.unit
@pytest.mark.parametrize("k", [0, 3, 8])
def test_reader_backwards_access_rewinds_once(k):
    reader = single_task_listing().get(0)

    assert reader[k + 1] == f"obj-{k + 1}"
    assert reader.rewinds == 0
    assert reader[k] == f"obj-{k}"
    assert reader.rewinds == 1


@pytest.mark.unit
def test_reader_second_iteration_rewinds():
    reader = single_task_listing(3).get(0)

    assert list(reader) == ["obj-0", "obj-1", "obj-2"]
    assert list(reader) == ["obj-0", "obj-1", "obj-2"]
    assert reader.rewinds == 1


@pytest.mark.unit
def test_reader_negative_index_and_slice():
    reader = single_task_listing(5).get(0)

    assert reader[-1] == "obj-4"
    assert reader[1:3] == ["obj-1", "obj-2"]
    with pytest.raises(IndexError):
        reader[5]


@pytest.mark.unit
def test_reader_for_later_task_skips_earlier_records():
    listing = build(SAMPLE, min_task_size=120)
    reader = listing.get(1)

    assert len(reader) == 1
    assert reader[0] == "a/3.csv"
    assert reader.rewinds == 0


@pytest.mark.unit
def test_each_get_returns_independent_reader():
    listing = single_task_listing(4)
    first = listing.get(0)
    second = listing.get(0)

    assert first[3] == "obj-3"
    assert second[0] == "obj-0"
    assert first.position == 4
    assert second.position == 1


@pytest.mark.unit
def test_reader_declared_length_mismatch():
    blob = gzip.compress(struct.pack(">I", 10) + b"abc")
    reader = EntryList(blob, [Entry(0, 1)])

    with pytest.raises(CorruptedListingError):
        reader[0]


@pytest.mark.unit
def test_reader_missing_record():
    blob = gzip.compress(struct.pack(">I", 1) + b"a")
    reader = EntryList(blob, [Entry(0, 1), Entry(1, 1)])

    assert reader[0] == "a"
    with pytest.raises(CorruptedListingError):
        reader[1]


@pytest.mark.unit
def test_reader_not_gzip():
    reader = EntryList(b"definitely not gzip", [Entry(0, 1)])

    with pytest.raises(CorruptedListingError):
        reader[0]


@pytest.mark.unit
def test_reader_truncated_blob():
    listing = single_task_listing(200)
    reader = EntryList(listing.blob[: len(listing.blob) // 2], listing.tasks[0])

    with pytest.raises(CorruptedListingError):
        list(reader)


@pytest.mark.unit
def test_reader_close():
    names = build(SAMPLE).get(0)

    assert not names.closed
    names.close()
    assert names.closed
