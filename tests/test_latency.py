import pytest

from gnmikit.latency import (
    HOUR,
    MICROSECOND,
    MILLISECOND,
    MINUTE,
    SECOND,
    Latency,
    StatType,
    compact_duration_string,
    format_duration,
    metadata_name,
    parse_duration,
    parse_windows,
    path,
)

AVG, MAX, MIN = StatType.AVG, StatType.MAX, StatType.MIN


def unix(sec, nsec=0):
    return sec * SECOND + nsec


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


class FakeMeta:
    def __init__(self, fail=False):
        self.values = {}
        self.fail = fail

    def set_int(self, name, value):
        if self.fail:
            raise RuntimeError("error")
        self.values[name] = value


def make(windows, **kwargs):
    clock = FakeClock()
    lat = Latency(windows, clock=clock, **kwargs)

    def compute(ts, nts):
        clock.now = nts
        lat.compute(ts)

    def update_reset(m, nts):
        clock.now = nts
        lat.update_reset(m)

    return lat, clock, compute, update_reset


def test_latency_without_windows():
    lat, clock, compute, update_reset = make([])
    m = FakeMeta(fail=True)
    compute(unix(97), unix(98))
    compute(unix(96), unix(99))
    update_reset(m, unix(100))
    compute(unix(96), unix(101))
    compute(unix(94), unix(101))
    update_reset(m, unix(102))
    assert m.values == {}


def test_avg_latency():
    win = 2 * SECOND
    _, _, compute, update_reset = make([win], avg_precision=MICROSECOND)
    m = FakeMeta()
    compute(unix(96, 999398800), unix(98))
    compute(unix(96), unix(99, 803400))
    update_reset(m, unix(100))
    assert m.values == {
        metadata_name(win, AVG): 2000702000,
        metadata_name(win, MAX): 3000803400,
        metadata_name(win, MIN): 1000601200,
    }


def test_update_last():
    win = MINUTE
    lat, clock, compute, update_reset = make(
        [win], avg_precision=MICROSECOND, compute_func=lambda ts, now: (now - ts) // 2
    )
    m = FakeMeta()
    compute(unix(96, 999398800), unix(98))
    compute(unix(96), unix(99, 803400))
    update_reset(m, unix(100))
    for typ in (AVG, MAX, MIN):
        assert metadata_name(win, typ) not in m.values
    clock.now = unix(100)
    lat.update_last(m)
    assert m.values == {
        metadata_name(win, AVG): 1000350000,
        metadata_name(win, MAX): 1500401700,
        metadata_name(win, MIN): 500300600,
    }


@pytest.mark.parametrize("precision", [None, MICROSECOND, MILLISECOND])
def test_latency_windows(precision):
    sm, md, lg = 2 * SECOND, 4 * SECOND, 8 * SECOND
    windows = [sm, md, lg]
    all_names = [metadata_name(w, t) for w in windows for t in (AVG, MAX, MIN)]
    _, _, compute, update_reset = make(windows, avg_precision=precision)
    m = FakeMeta()

    def check(expected):
        want = {metadata_name(w, t): v for (w, t), v in expected.items()}
        for name in all_names:
            if name in want:
                assert m.values.get(name) == want[name], name
            else:
                assert name not in m.values, name

    check({})

    compute(unix(97), unix(98))
    compute(unix(96), unix(99))
    update_reset(m, unix(100))
    check({(sm, AVG): 2 * SECOND, (sm, MAX): 3 * SECOND, (sm, MIN): 1 * SECOND})

    compute(unix(96), unix(101))
    compute(unix(94), unix(101))
    update_reset(m, unix(102))
    check({
        (sm, AVG): 6 * SECOND, (sm, MAX): 7 * SECOND, (sm, MIN): 5 * SECOND,
        (md, AVG): 4 * SECOND, (md, MAX): 7 * SECOND, (md, MIN): 1 * SECOND,
    })

    compute(unix(98, 1000), unix(103, 1000))
    compute(unix(100, 2000), unix(103, 2000))
    update_reset(m, unix(104))
    check({
        (sm, AVG): 4 * SECOND, (sm, MAX): 5 * SECOND, (sm, MIN): 3 * SECOND,
        (md, AVG): 5 * SECOND, (md, MAX): 7 * SECOND, (md, MIN): 3 * SECOND,
    })

    compute(unix(101), unix(105))
    update_reset(m, unix(106))
    check({
        (sm, AVG): 4 * SECOND, (sm, MAX): 4 * SECOND, (sm, MIN): 4 * SECOND,
        (md, AVG): 4 * SECOND, (md, MAX): 5 * SECOND, (md, MIN): 3 * SECOND,
        (lg, AVG): 4 * SECOND, (lg, MAX): 7 * SECOND, (lg, MIN): 1 * SECOND,
    })

    compute(unix(104, 1000), unix(107, 1000))
    compute(unix(105, 2000), unix(107, 2000))
    compute(unix(106, 3000), unix(107, 3000))
    update_reset(m, unix(108))
    check({
        (sm, AVG): 2 * SECOND, (sm, MAX): 3 * SECOND, (sm, MIN): 1 * SECOND,
        (md, AVG): 2500 * MILLISECOND, (md, MAX): 4 * SECOND, (md, MIN): 1 * SECOND,
        (lg, AVG): 3750 * MILLISECOND, (lg, MAX): 7 * SECOND, (lg, MIN): 1 * SECOND,
    })

    update_reset(m, unix(110))
    check({
        (sm, AVG): 2 * SECOND, (sm, MAX): 3 * SECOND, (sm, MIN): 1 * SECOND,
        (md, AVG): 2 * SECOND, (md, MAX): 3 * SECOND, (md, MIN): 1 * SECOND,
        (lg, AVG): 3 * SECOND, (lg, MAX): 5 * SECOND, (lg, MIN): 1 * SECOND,
    })

    update_reset(m, unix(112))
    check({
        (sm, AVG): 2 * SECOND, (sm, MAX): 3 * SECOND, (sm, MIN): 1 * SECOND,
        (md, AVG): 2 * SECOND, (md, MAX): 3 * SECOND, (md, MIN): 1 * SECOND,
        (lg, AVG): 2500 * MILLISECOND, (lg, MAX): 4 * SECOND, (lg, MIN): 1 * SECOND,
    })

    compute(unix(110), unix(113))
    compute(unix(108), unix(113))
    update_reset(m, unix(114))
    check({
        (sm, AVG): 4 * SECOND, (sm, MAX): 5 * SECOND, (sm, MIN): 3 * SECOND,
        (md, AVG): 4 * SECOND, (md, MAX): 5 * SECOND, (md, MIN): 3 * SECOND,
        (lg, AVG): 2800 * MILLISECOND, (lg, MAX): 5 * SECOND, (lg, MIN): 1 * SECOND,
    })


def test_parse_windows_bad_duration():
    with pytest.raises(ValueError, match="parsing abc"):
        parse_windows(["abc"], 2 * SECOND)


def test_parse_windows_not_multiple():
    with pytest.raises(ValueError, match="not a multiple of metadata update period"):
        parse_windows(["2s", "5s"], 2 * SECOND)


def test_parse_windows_success():
    got = parse_windows(["2s", "30s", "5m", "3h"], 2 * SECOND)
    assert got == [2 * SECOND, 30 * SECOND, 5 * MINUTE, 3 * HOUR]


@pytest.mark.parametrize(
    "text, want",
    [
        ("24h", "24h"),
        ("1h", "1h"),
        ("10m", "10m"),
        ("1h10m", "1h10m"),
        ("1h10m30s", "1h10m30s"),
        ("10m30s", "10m30s"),
        ("30s", "30s"),
    ],
)
def test_compact_duration_string(text, want):
    assert compact_duration_string(parse_duration(text)) == want


@pytest.mark.parametrize(
    "nanos, want",
    [
        (0, "0s"),
        (HOUR, "1h0m0s"),
        (MINUTE, "1m0s"),
        (1500 * MILLISECOND, "1.5s"),
        (1500 * MICROSECOND, "1.5ms"),
        (1500, "1.5µs"),
        (42, "42ns"),
        (-2 * MINUTE, "-2m0s"),
    ],
)
def test_format_duration(nanos, want):
    assert format_duration(nanos) == want


@pytest.mark.parametrize(
    "text, want",
    [
        ("0", 0),
        ("1.5h", 90 * MINUTE),
        ("-1m30s", -90 * SECOND),
        ("300ms", 300 * MILLISECOND),
        ("2us", 2 * MICROSECOND),
        (".5s", 500 * MILLISECOND),
    ],
)
def test_parse_duration(text, want):
    assert parse_duration(text) == want


@pytest.mark.parametrize("text, message", [
    ("", "invalid duration"),
    ("1", "missing unit"),
    ("1x", "unknown unit"),
    (".s", "invalid duration"),
])
def test_parse_duration_errors(text, message):
    with pytest.raises(ValueError, match=message):
        parse_duration(text)


def test_round_trip_format_parse():
    for nanos in (SECOND, 90 * MINUTE, 3 * HOUR + 7 * SECOND, 1500 * MILLISECOND):
        assert parse_duration(format_duration(nanos)) == nanos


def test_metadata_name_and_path():
    assert metadata_name(2 * SECOND, AVG) == "avgLatencyWindow2s"
    assert metadata_name(5 * MINUTE, MIN) == "minLatencyWindow5m"
    assert path(5 * MINUTE, MAX, ["meta"]) == ["meta", "latency", "window", "5m", "max"]
    assert path(HOUR, AVG) == ["latency", "window", "1h", "avg"]


def test_stat_type_str():
    assert [path(SECOND, t)[-1] for t in StatType] == ["avg", "max", "min"]
    assert [metadata_name(SECOND, t) for t in StatType] == [
        "avgLatencyWindow1s",
        "maxLatencyWindow1s",
        "minLatencyWindow1s",
    ]
    assert [str(t) for t in StatType] == ["avg", "max", "min"]