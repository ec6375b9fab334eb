import pytest

from huabot.plugins.fortune import (
    DEFAULT_KIND,
    TABLE,
    background_kind,
    offset,
    rows_num,
    set_background,
    text_layout,
)


class FakeControl:
    def __init__(self):
        self.data = {}

    def get_data(self, gid):
        return self.data.get(gid, 0)

    def set_data(self, gid, value):
        self.data[gid] = value


@pytest.mark.parametrize("total,div", [(0, 9), (1, 9), (9, 9), (10, 9), (17, 2), (18, 9), (100, 7)])
def test_rows_num_is_ceiling(total, div):
    rows = rows_num(total, div)
    assert rows * div >= total
    assert (rows - 1) * div < total or total == 0


def test_rows_num_exact():
    assert rows_num(18, 9) == 2


@pytest.mark.parametrize("total", [1, 2, 3, 4, 9])
def test_offset_steps_by_distance(total):
    for now in range(1, total):
        assert offset(total, now + 1, 7.5) - offset(total, now, 7.5) == pytest.approx(7.5)


def test_offset_zero_distance():
    assert offset(5, 3, 0.0) == 0.0


def test_layout_keeps_characters():
    words = "今日宜出门远行"
    placed = text_layout(words, 33.0, 33.0)
    assert "".join(ch for ch, _, _ in placed) == words


def test_layout_single_column():
    placed = text_layout("一二三四五六七八九", 30.0, 30.0)
    assert len({x for _, x, _ in placed}) == 1
    ys = [y for _, _, y in placed]
    assert ys == sorted(ys)


def test_layout_two_columns():
    placed = text_layout("一二三四五六七八九十甲乙", 30.0, 30.0)
    assert len({x for _, x, _ in placed}) == 2


def test_layout_three_columns():
    placed = text_layout("字" * 19, 30.0, 30.0)
    assert len({x for _, x, _ in placed}) == 3


def test_background_round_trip():
    control = FakeControl()
    set_background(control, -42, "原神")
    assert background_kind(control, -42) == "原神"
    assert background_kind(control, 7) == DEFAULT_KIND


def test_background_unknown_name():
    with pytest.raises(KeyError):
        set_background(FakeControl(), 1, "不存在")


def test_background_out_of_range_and_missing_control():
    control = FakeControl()
    control.set_data(3, len(TABLE) + 5)
    assert background_kind(control, 3) == "车万"
    assert background_kind(None, 3) == "车万"