"""
Cyton wire protocol: command bytes, response texts and scale factors.
"""

from __future__ import annotations

SIMULATOR_PORT_NAME = "OpenBCISimulator"
OPEN_DELAY = 0.200        # seconds before the port reports "open"
SYNC_SENT_DELAY = 0.010   # seconds before the sync-sent token goes out

EOT = b"$$$"

# ---- Firmware / line noise ---- #
FIRMWARE_V1 = "v1"
FIRMWARE_V2 = "v2"
LINE_NOISE_60HZ = "60Hz"
LINE_NOISE_50HZ = "50Hz"
LINE_NOISE_NONE = "None"

# ---- Channels / rates ---- #
NUM_CHANNELS_DEFAULT = 8
NUM_CHANNELS_DAISY = 16
NUM_AUX_CHANNELS = 3
SAMPLE_RATE_250 = 250
SAMPLE_RATE_125 = 125
SAMPLE_NUMBER_MODULUS = 256
MIN_TICK_MS = 2.0

# ---- Stream / misc commands ---- #
CMD_STREAM_START = ord("b")
CMD_STREAM_STOP = ord("s")
CMD_SOFT_RESET = ord("v")

# ---- Radio (dongle) commands, V2 firmware only ---- #
RADIO_KEY = 0xF0
RADIO_CHANNEL_GET = 0x00
RADIO_CHANNEL_SET = 0x01
RADIO_POLL_TIME_SET = 0x04

# ---- SD card ---- #
SD_LOG_FOR_MIN5 = ord("A")
SD_LOG_FOR_MIN15 = ord("S")
SD_LOG_FOR_MIN30 = ord("F")
SD_LOG_FOR_HOUR1 = ord("G")
SD_LOG_FOR_HOUR2 = ord("H")
SD_LOG_FOR_HOUR4 = ord("J")
SD_LOG_FOR_HOUR12 = ord("K")
SD_LOG_FOR_HOUR24 = ord("L")
SD_LOG_FOR_SEC14 = ord("a")
SD_LOG_STOP = ord("j")

SD_LOG_START_COMMANDS = frozenset(
    {
        SD_LOG_FOR_MIN5,
        SD_LOG_FOR_MIN15,
        SD_LOG_FOR_MIN30,
        SD_LOG_FOR_HOUR1,
        SD_LOG_FOR_HOUR2,
        SD_LOG_FOR_HOUR4,
        SD_LOG_FOR_HOUR12,
        SD_LOG_FOR_HOUR24,
        SD_LOG_FOR_SEC14,
    }
)

# ---- Clock sync ---- #
CMD_SYNC_TIME_SET = ord("<")
CMD_SYNC_CLOCK_SERVER_DATA = ord(">")
SYNC_TIME_SENT = b","

# ---- Response texts ---- #
TXT_CHANNEL_SUCCESS = b"Success: Channel changed to 0x"
TXT_CHANNEL_GET_FAILURE = (
    b"Failure: No Board communications; Dongle on channel number: 0x"
)
TXT_NO_BOARD_COMMS = (
    b"Failure: No communications from Board. Is your Board on the right "
    b"channel? Is your Board powered up?"
)
TXT_POLL_TIME_SUCCESS = b"Success: Poll time set"
TXT_BANNER = "OpenBCI V3 Simulator\nOn Board ADS1299 Device ID: 0x12345\n"
TXT_DAISY_ID = "On Daisy ADS1299 Device ID: 0xFFFFF\n"
TXT_ACCEL_ID = "LIS3DH Device ID: 0x38422\n"
TXT_FIRMWARE_V2 = "Firmware: v2\n"
TXT_SD_WIRING = (
    b"Wiring is correct and a card is present.\n"
    b"Corresponding SD file OBCI_69.TXT\n"
)
TXT_SD_NO_OPEN_FILE = b"No open file to close\n"
TXT_SYNCED = b"Synced!"
ACK_SUCCESS = "Success!"

# ---- Packet framing & scaling ---- #
PACKET_START = 0xA0
PACKET_STOP = 0xC0
ADS1299_VREF = 4.5
ADS1299_GAIN = 24.0
SCALE_VOLTS_PER_COUNT = ADS1299_VREF / ADS1299_GAIN / (2 ** 23 - 1)
SCALE_G_PER_COUNT = 0.002 / 2 ** 4
