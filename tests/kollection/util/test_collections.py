from kollection.util.collections import SeenRecord


def test_add_reports_first_sighting():
    seen = SeenRecord()
    assert seen.add(1)
    assert not seen.add(1)
    assert seen.add("1")
    assert len(seen) == 2


def test_equal_values_are_the_same_key():
    seen = SeenRecord()
    assert seen.add(1)
    assert not seen.add(1.0)
    assert not seen.add(True)


def test_unhashable_values_fall_back_to_equality():
    seen = SeenRecord()
    assert seen.add([1, 2])
    assert not seen.add([1, 2])
    assert seen.add({"a": 1})
    assert {"a": 1} in seen
    assert [2, 1] not in seen
    assert len(seen) == 2


def test_initial_values():
    seen = SeenRecord([1, [2], 1])
    assert 1 in seen
    assert [2] in seen
    assert 3 not in seen
    assert len(seen) == 2
