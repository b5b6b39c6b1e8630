"""Constants for the SwitchBot meter protocol."""

# Advertisement service data UUID carrying the live reading
ADVERTISEMENT_SERVICE_UUID = "0000fd3d-0000-1000-8000-00805f9b34fb"

# Proprietary command service (write to WRITE, notify on READ)
SERVICE_UUID = "cba20d00-224d-11e6-9fb8-0002a5d5c51b"
WRITE_CHAR_UUID = "cba20002-224d-11e6-9fb8-0002a5d5c51b"
READ_CHAR_UUID = "cba20003-224d-11e6-9fb8-0002a5d5c51b"

FRAME_MARKER = 0x57
EXTENDED_CLASS = 0x0F

RESPONSE_OK = 1
LIVE_DEVICE_TYPE = 105

CMD_SET_TIME = 5
CMD_READ_STORE_INFO = 58
CMD_READ_SECTION_INFO = 59
CMD_READ_SAMPLE_BLOCK = 60

# Store addressing unit, also sent as the block multiplier of a fetch
SAMPLE_COUNT = 6

SAMPLE_WINDOW = 5
SECTION_INFO_LENGTH = 13
LIVE_DATA_LENGTH = 6
SET_TIME_TAG = (3, 0)

DEFAULT_SCAN_TIMEOUT = 10
EXCHANGE_TIMEOUT = 10.0
DISCONNECT_DELAY = 120
BLEAK_BACKOFF_TIME = 0.25
