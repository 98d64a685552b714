"""Test IO pin and sensor models."""

import pytest

from microbit_ble.models.pins import PinValue, PWMOutput
from microbit_ble.models.sensors import Vector3


class TestPinModels:
    """Test PinValue and PWMOutput validation."""

    def test_pin_value_range(self):
        """Test pin and value must fit in a byte."""
        assert PinValue(pin=19, value=255).value == 255
        with pytest.raises(ValueError, match="pin out of range"):
            PinValue(pin=256, value=0)

    def test_pwm_value_range(self):
        """Test PWM values are limited to 0-1024."""
        assert PWMOutput(pin=0, value=1024, period=20000).value == 1024
        with pytest.raises(ValueError, match="must be 0-1024"):
            PWMOutput(pin=0, value=1025, period=20000)

    def test_pwm_period_fits_uint32(self):
        """Test the period must fit in 32 bits."""
        with pytest.raises(ValueError, match="uint32"):
            PWMOutput(pin=0, value=0, period=1 << 32)


class TestVector3:
    """Test sensor vector conversion."""

    def test_from_raw_scales_to_physical_units(self):
        """Test raw [1000, -500, 0] decodes to [1.0, -0.5, 0.0]."""
        vector = Vector3.from_raw((1000, -500, 0))
        assert vector.as_tuple() == (1.0, -0.5, 0.0)

    def test_from_raw_requires_three_axes(self):
        """Test other lengths are rejected."""
        with pytest.raises(ValueError, match="3 axis values"):
            Vector3.from_raw((1, 2))

    def test_default_is_zero(self):
        """Test the default vector is zero."""
        assert Vector3() == Vector3(0.0, 0.0, 0.0)
