"""
Tests for the SaveData state container and the Initializable capability.

Tests cover:
- Serializable values stored in _data (persisted)
- In-memory objects stored in _objects (never persisted)
- Dict and attribute style access
- Change tracking
"""
import pytest
from pydantic import BaseModel

from savegame_vault.data import Initializable, SaveData


# --- Test Fixtures ---

class DummyManager:
    """Non-serializable class for testing in-memory storage."""
    def __init__(self, name: str = "default"):
        self.name = name
        self.data = {}

    def add(self, key: str, value):
        self.data[key] = value


class Loadout(BaseModel):
    """Serializable pydantic model for testing."""
    skin: str
    level: int = 1


class WalletState(SaveData, Initializable):
    """SaveData subclass with post-construction setup."""

    def initialize(self) -> None:
        self.setdefault('coins', 0)
        self.setdefault('pearls', 0)


@pytest.fixture
def state():
    return SaveData()


@pytest.fixture
def state_with_data():
    return SaveData(data={
        'coins': 120,
        'owned': ['red', 'blue'],
        'tutorial_done': True,
    })


class TestInitialization:

    def test_empty_state(self, state):
        assert state.empty is True
        assert len(state) == 0
        assert state.is_changed is False

    def test_state_with_initial_data(self, state_with_data):
        assert state_with_data.empty is False
        assert state_with_data['coins'] == 120
        assert state_with_data['owned'] == ['red', 'blue']

    def test_created_timestamp(self, state):
        assert isinstance(state.created, int)

    def test_explicit_created(self):
        assert SaveData(created=1700000000).created == 1700000000

    def test_initializable_is_abstract(self):
        with pytest.raises(TypeError):
            Initializable()

    def test_initializable_subclass(self):
        wallet = WalletState(data={'coins': 5})
        assert isinstance(wallet, Initializable)
        wallet.initialize()
        assert wallet['coins'] == 5
        assert wallet['pearls'] == 0


class TestValueRouting:

    @pytest.mark.parametrize("value", [
        'text', 42, 1.5, True, None, b'\x00\x01',
        [1, 2, 3], {'nested': {'a': 1}},
    ])
    def test_serializable_goes_to_data(self, state, value):
        state['key'] = value
        assert 'key' in state._data
        assert 'key' not in state._objects

    @pytest.mark.parametrize("value", [
        (1, 2), [1, (2, 3)], {'pos': (0, 0)},
        float('inf'), float('-inf'), float('nan'), [1.0, float('inf')],
    ])
    def test_values_changed_by_json_stay_in_memory(self, state, value):
        state['key'] = value
        assert 'key' in state._objects
        assert 'key' not in state.save_data()

    def test_pydantic_model_is_serializable(self, state):
        state['loadout'] = Loadout(skin='gold')
        assert 'loadout' in state._data

    def test_class_instance_goes_to_objects(self, state):
        manager = DummyManager()
        state['manager'] = manager
        assert state['manager'] is manager
        assert 'manager' in state._objects
        assert 'manager' not in state.save_data()

    def test_non_string_dict_keys_stay_in_memory(self, state):
        state['grid'] = {(1, 2): 'wall'}
        assert 'grid' in state._objects

    def test_reassign_moves_storage(self, state):
        state['key'] = 'serializable'
        state['key'] = DummyManager()
        assert 'key' not in state._data
        assert 'key' in state._objects
        state['key'] = 'again'
        assert 'key' in state._data
        assert 'key' not in state._objects


class TestAccess:

    def test_attribute_set_and_get(self, state):
        state.coins = 10
        assert state.coins == 10
        assert state['coins'] == 10

    def test_attribute_error_for_missing(self, state):
        with pytest.raises(AttributeError):
            _ = state.nonexistent

    def test_getitem_keyerror(self, state):
        with pytest.raises(KeyError):
            _ = state['nonexistent']

    def test_delitem(self, state):
        state['a'] = 1
        state['b'] = DummyManager()
        del state['a']
        del state['b']
        assert state.empty is True

    def test_delitem_keyerror(self, state):
        with pytest.raises(KeyError):
            del state['nonexistent']

    def test_iteration_and_len(self, state):
        state['a'] = 1
        state['b'] = DummyManager()
        assert set(state) == {'a', 'b'}
        assert len(state) == 2

    def test_get_with_default(self, state):
        assert state.get('missing', 'default') == 'default'

    def test_repr(self, state):
        state['coins'] = 1
        state['dm'] = DummyManager()
        text = repr(state)
        assert 'SaveData' in text
        assert 'coins' in text
        assert 'dm' in text


class TestChangeTracking:

    def test_changed_on_serializable_set(self, state):
        state['coins'] = 1
        assert state.is_changed is True

    def test_not_changed_on_object(self, state):
        state['dm'] = DummyManager()
        assert state.is_changed is False

    def test_is_changed_setter_does_not_store_value(self, state):
        state['coins'] = 1
        state.is_changed = False
        assert state.is_changed is False
        assert 'is_changed' not in state

    def test_changed_on_delete(self, state):
        state['coins'] = 1
        state.is_changed = False
        del state['coins']
        assert state.is_changed is True

    def test_clear(self, state):
        state['coins'] = 1
        state['dm'] = DummyManager()
        state.clear()
        assert state.empty is True
        assert state.is_changed is True
