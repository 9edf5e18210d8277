import threading
from unittest import mock

import pytest

from pcastcore.logbuffer import LogType
from pcastcore.streams import StreamTimeout
from pcastcore.system import Random, System, ThreadInfo


def test_random_first_value_for_seed_one():
    assert Random(1).next() == 2422818384


def test_random_is_repeatable_and_reseedable():
    first = Random(42)
    second = Random(42)
    values = [first.next() for _ in range(20)]
    assert values == [second.next() for _ in range(20)]
    first.set_seed(42)
    assert first.next() == values[0]


def test_random_default_seed():
    assert Random().next() == Random(Random.DEFAULT_SEED).next()


def test_random_values_fit_in_32_bits():
    gen = Random(-7)
    assert all(0 <= gen.next() <= 0xFFFFFFFF for _ in range(1000))


def test_system_seed_and_rnd_seed():
    ref = Random(5)
    system = System(seed=5)
    assert system.rnd_seed == ref.next()
    assert system.rnd() == ref.next()


def test_get_time_uses_clock():
    system = System(seed=1, clock=lambda: 1234)
    assert system.get_time() == 1234


def test_log_buffer_uses_system_clock():
    system = System(seed=1, clock=lambda: 1234)
    system.log_buf.write("hello", LogType.ERROR)
    entry = system.log_buf.entries()[0]
    assert (entry.time, entry.log_type, entry.text) == (1234, LogType.ERROR, "hello")


def test_start_wait_and_end_thread():
    system = System(seed=1)
    seen = []

    def work(info):
        seen.append(info.data)
        system.end_thread(info)

    info = ThreadInfo(func=work, data="payload")
    assert system.start_thread(info) is True
    assert info.active is True
    system.wait_thread(info, 5000)
    assert seen == ["payload"]
    assert system.num_threads == 0


def test_wait_thread_times_out():
    system = System(seed=1)
    release = threading.Event()
    info = ThreadInfo(func=lambda i: release.wait(5))
    system.start_thread(info)
    try:
        with pytest.raises(StreamTimeout):
            system.wait_thread(info, 50)
    finally:
        release.set()
        system.wait_thread(info, 5000)


def test_thread_shutdown_clears_active():
    info = ThreadInfo(active=True)
    info.shutdown()
    assert info.active is False


def test_call_local_url_and_get_url():
    opened = []
    system = System(seed=1, opener=opened.append)
    system.call_local_url("admin?page=index", 7144)
    system.get_url("http://example.com/")
    assert opened == ["http://localhost:7144/admin?page=index", "http://example.com/"]


def test_execute_file_opens_file_uri(tmp_path):
    opened = []
    system = System(seed=1, opener=opened.append)
    target = tmp_path / "a.txt"
    target.write_text("x")
    system.execute_file(target)
    assert opened == [target.resolve().as_uri()]


def test_exit_raises_system_exit():
    with pytest.raises(SystemExit) as info:
        System(seed=1).exit()
    assert info.value.code == 0


def test_sleep_idle_sleeps_ten_milliseconds():
    system = System(seed=1)
    with mock.patch("time.sleep") as fake_sleep:
        result = system.sleep_idle()
    assert (result, fake_sleep.call_args_list) == (None, [mock.call(0.01)])


def test_sleep_converts_milliseconds_to_seconds():
    system = System(seed=1)
    with mock.patch("time.sleep") as fake_sleep:
        result = system.sleep(250)
    assert (result, fake_sleep.call_args_list) == (None, [mock.call(0.25)])


def test_has_no_gui():
    assert System(seed=1).has_gui() is False