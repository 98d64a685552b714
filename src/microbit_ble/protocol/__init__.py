"""micro:bit GATT profile and payload codecs."""

from .commands import (
    MAX_TEXT_LENGTH,
    build_led_matrix_payload,
    build_led_text_payload,
    build_period_payload,
    build_pin_mask_payload,
    build_pin_output_payload,
    build_pwm_payload,
    build_scroll_delay_payload,
    filter_ascii,
)
from .profile import (
    NAME_PREFIX,
    SERVICE_CHARACTERISTICS,
    SERVICE_IDS,
    characteristics_for_service,
    normalize_uuid,
    service_for_uuid,
    service_uuids,
)
from .responses import (
    parse_button_state,
    parse_byte_list,
    parse_int8,
    parse_int16_triple,
    parse_pin_mask,
    parse_pin_values,
    parse_string,
    parse_uint8,
    parse_uint16,
)

__all__ = [
    "NAME_PREFIX",
    "MAX_TEXT_LENGTH",
    "SERVICE_IDS",
    "SERVICE_CHARACTERISTICS",
    "normalize_uuid",
    "service_uuids",
    "service_for_uuid",
    "characteristics_for_service",
    "build_period_payload",
    "build_scroll_delay_payload",
    "build_led_matrix_payload",
    "build_led_text_payload",
    "build_pin_mask_payload",
    "build_pin_output_payload",
    "build_pwm_payload",
    "filter_ascii",
    "parse_string",
    "parse_uint8",
    "parse_int8",
    "parse_uint16",
    "parse_int16_triple",
    "parse_byte_list",
    "parse_button_state",
    "parse_pin_values",
    "parse_pin_mask",
]
