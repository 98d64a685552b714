"""Test model enums and the adapter error mapping."""

import pytest

from microbit_ble.exceptions import (
    PoweredOffError,
    UnauthorizedError,
    UnavailableError,
    UnknownAdapterStateError,
    adapter_error_for,
)
from microbit_ble.models.enums import (
    LINKED_STATES,
    AdapterState,
    ButtonState,
    PeripheralState,
    SensingPeriod,
)


class TestButtonState:
    """Test ButtonState enum."""

    def test_button_state_values(self):
        """Test button states match the characteristic values."""
        assert ButtonState.OFF == 0
        assert ButtonState.ON == 1
        assert ButtonState.LONG == 2


class TestSensingPeriod:
    """Test SensingPeriod enum."""

    def test_sensing_period_values(self):
        """Test all supported periods in milliseconds."""
        assert [int(p) for p in SensingPeriod] == [1, 2, 5, 10, 20, 80, 160, 640]


class TestLinkedStates:
    """Test which peripheral states count as connected."""

    def test_busy_states_are_linked(self):
        """Test CONNECTED and the read/write/notify busy states are linked."""
        assert LINKED_STATES == {
            PeripheralState.CONNECTED,
            PeripheralState.READING,
            PeripheralState.WRITING,
            PeripheralState.SETTING,
        }

    def test_discovering_is_not_linked(self):
        """Test DISCOVERING does not count as connected yet."""
        assert PeripheralState.DISCOVERING not in LINKED_STATES
        assert PeripheralState.DISCONNECTING not in LINKED_STATES


class TestAdapterErrors:
    """Test adapter state to error mapping."""

    @pytest.mark.parametrize(
        ("state", "error_class"),
        [
            (AdapterState.POWERED_OFF, PoweredOffError),
            (AdapterState.UNAUTHORIZED, UnauthorizedError),
            (AdapterState.RESETTING, UnavailableError),
            (AdapterState.UNSUPPORTED, UnavailableError),
            (AdapterState.UNKNOWN, UnknownAdapterStateError),
        ],
    )
    def test_unusable_states(self, state, error_class):
        """Test each unusable state maps to its error."""
        error = adapter_error_for(state)
        assert isinstance(error, error_class)
        assert state.value in str(error)

    def test_powered_on_has_no_error(self):
        """Test POWERED_ON maps to no error."""
        assert adapter_error_for(AdapterState.POWERED_ON) is None
