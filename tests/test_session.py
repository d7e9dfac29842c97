import threading

import pytest
from hypothesis import HealthCheck, given, strategies as st, settings

from config import Config
from directory.session import Debouncer, DirectorySession


@pytest.fixture
def session(sample_records, fake_engine, tracking, quiet_config):
    s = DirectorySession(sample_records, engine=fake_engine, tracking=tracking, config=quiet_config)
    s.setup_map()
    return s


def test_setup_map_registers_everything(sample_records, fake_engine, quiet_config):
    session = DirectorySession(sample_records, engine=fake_engine, config=quiet_config)
    counts = []
    session.pipeline.add_count_listener(lambda n, label: counts.append(label))
    session.setup_map()
    assert len(fake_engine.images) == 10
    assert fake_engine.sources['locations']['data']['features'][0]['properties']['code'] == 1
    assert [l['id'] for l in fake_engine.layers] == ['clusters', 'cluster-count', 'moniteur-points', 'ecole-points']
    assert counts == ['4 résultat(s)']


def test_setup_map_needs_engine(sample_records):
    with pytest.raises(RuntimeError):
        DirectorySession(sample_records).setup_map()


def test_filter_changes_push_to_engine(session, fake_engine):
    session.set_facets(disciplines={'VTT'})
    assert [f['properties']['code'] for f in fake_engine.data_pushes[-1]['features']] == [1, 3]
    assert session.criteria.active_facet_count == 1


class TestLegendToggles:
    def test_last_visible_category_cannot_be_hidden(self, session):
        assert session.toggle_schools() is True
        assert session.dataset.codes == [3, 4]
        assert session.toggle_instructors() is False
        assert session.visibility.instructors_visible
        assert session.dataset.codes == [3, 4]

    def test_toggle_back(self, session):
        session.toggle_instructors()
        assert session.dataset.codes == [1, 2]
        session.toggle_instructors()
        assert session.dataset.codes == [1, 2, 3, 4]

    @given(st.lists(st.sampled_from(['schools', 'instructors']), max_size=30))
    @settings(max_examples=50, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_never_both_hidden(self, sample_records, quiet_config, toggles):
        session = DirectorySession(sample_records, config=quiet_config)
        for which in toggles:
            getattr(session, f'toggle_{which}')()
            assert session.visibility.schools_visible or session.visibility.instructors_visible
            assert session.dataset.count > 0


class TestSearch:
    def test_only_last_text_is_evaluated(self, session):
        runs = []
        session.pipeline.add_count_listener(lambda n, label: runs.append(n))
        for text in ('l', 'ly', 'lyo', 'lyon'):
            session.set_search_text(text)
        assert session.debouncer.pending
        assert runs == []

        session.debouncer.flush()
        assert runs == [2]
        assert session.dataset.codes == [1, 4]
        assert not session.debouncer.pending

    def test_reset_cancels_pending_search(self, session):
        session.set_search_text('annecy')
        session.set_facets(services={'Stage'})
        session.toggle_schools()
        dataset = session.reset_filters()
        assert dataset.codes == [1, 2, 3, 4]
        assert not session.debouncer.pending
        assert session.criteria.search_text == ''
        assert session.visibility.schools_visible

    def test_toggle_during_pending_search_keeps_visibility(self, sample_records, fake_engine):
        class FastSearch(Config):
            SEARCH_DEBOUNCE_MS = 10

        woken = threading.Event()
        session = DirectorySession(sample_records, engine=fake_engine, config=FastSearch,
                                   on_search_due=woken.set)
        session.setup_map()
        threads = []
        session.pipeline.add_count_listener(lambda n, label: threads.append(threading.current_thread()))

        session.set_search_text('lyon')
        assert woken.wait(timeout=5)
        assert session.dataset.codes == [1, 2, 3, 4]

        session.toggle_schools()
        assert session.drain() is False
        assert session.dataset.codes == [4]
        assert fake_engine.data_pushes[-1]['features'][0]['properties']['code'] == 4
        assert not session.visibility.schools_visible
        assert threads == [threading.current_thread()]

    def test_due_search_runs_on_owning_thread(self, sample_records):
        class FastSearch(Config):
            SEARCH_DEBOUNCE_MS = 10

        woken = threading.Event()
        session = DirectorySession(sample_records, config=FastSearch, on_search_due=woken.set)
        threads = []
        session.pipeline.add_count_listener(lambda n, label: threads.append(threading.current_thread()))

        session.set_search_text('lyon')
        assert woken.wait(timeout=5)
        assert session.drain() is True
        assert session.dataset.codes == [1, 4]
        assert threads == [threading.current_thread()]


class TestDebouncer:
    def test_last_write_wins(self):
        calls = []
        debouncer = Debouncer(60000)
        debouncer.schedule(lambda: calls.append('first'))
        debouncer.schedule(lambda: calls.append('second'))
        debouncer.flush()
        assert calls == ['second']
        debouncer.flush()
        assert calls == ['second']

    def test_cancel(self):
        calls = []
        debouncer = Debouncer(60000)
        debouncer.schedule(lambda: calls.append(1))
        debouncer.cancel()
        debouncer.flush()
        assert calls == []

    def test_timer_marks_due_without_running(self):
        calls = []
        woken = threading.Event()
        debouncer = Debouncer(10, on_due=woken.set)
        debouncer.schedule(lambda: calls.append(threading.current_thread().name))
        assert woken.wait(timeout=5)
        assert debouncer.due and calls == []

        assert debouncer.drain() is True
        assert calls == [threading.current_thread().name]
        assert not debouncer.pending
        assert debouncer.drain() is False

    def test_drain_before_delay_is_noop(self):
        calls = []
        debouncer = Debouncer(60000)
        debouncer.schedule(lambda: calls.append(1))
        assert debouncer.drain() is False
        assert debouncer.pending and calls == []


class TestCard:
    def test_reveal_coordinates_tracks_coord_click(self, session, sender, parent):
        session.open_card(session.find_record(1))
        revealed = session.reveal_coordinates()
        assert revealed['phone'] == '04 78 00 00 00'
        assert [w['label'] for w in revealed['websites']] == ['ecole-velo-lyon.fr', 'shop.ecole-velo-lyon.fr']
        assert sender.payloads[-1]['event_type'] == 'coord_click'
        assert parent.messages[-1][0]['payload']['moniteur_id'] == 'ohme-1'

    def test_reveal_without_selection(self, session, sender):
        assert session.reveal_coordinates() is None
        assert sender.payloads == []

    def test_close_card(self, session):
        card = session.open_card(session.find_record('3'))
        assert card['type_label'] == 'Moniteur indépendant'
        session.reveal_coordinates()
        session.close_card()
        assert session.active_record is None and session.revealed is None

    def test_find_record(self, session):
        assert session.find_record(2).name == 'Bike School Paris'
        assert session.find_record('abc') is None
        assert session.find_record(None) is None
        assert session.find_record(99) is None


class TestGeolocation:
    def test_position_stored(self, session):
        class Locator:
            def current_position(self):
                return (4.85, 45.75)

        session.locate_user(Locator())
        assert session.user_position == (4.85, 45.75)

    def test_failure_leaves_position_unknown(self, session):
        class DeniedLocator:
            def current_position(self):
                raise PermissionError('User denied Geolocation')

        session.locate_user(DeniedLocator())
        assert session.user_position is None
