"""
Streamlit presentation layer.
Run `streamlit run app.py`
"""

from __future__ import annotations

import time
from queue import Empty

import pandas as pd
import streamlit as st

from ..controller.controller import Controller
from ..devices import constants as k
from ..utils.config import EmulatorOptions

_MAX_ROWS = 1000       # samples kept for the chart
_MAX_RESPONSES = 50

_COMMANDS = {
    "Start stream (b)": bytes([k.CMD_STREAM_START]),
    "Stop stream (s)": bytes([k.CMD_STREAM_STOP]),
    "Soft reset (v)": bytes([k.CMD_SOFT_RESET]),
    "SD log 14 s (a)": bytes([k.SD_LOG_FOR_SEC14]),
    "SD log 5 min (A)": bytes([k.SD_LOG_FOR_MIN5]),
    "SD log stop (j)": bytes([k.SD_LOG_STOP]),
    "Radio channel get": bytes([k.RADIO_KEY, k.RADIO_CHANNEL_GET]),
    "Sync time set (<)": bytes([k.CMD_SYNC_TIME_SET]),
}


# --------------------------------------------------------------------------- #
# ------------------------------  HELPERS  ---------------------------------- #
# --------------------------------------------------------------------------- #
def _drain_queue(ctrl: Controller) -> None:
    """Pull ALL queued updates into session‑level state."""
    rows = []
    while True:
        try:
            item = ctrl.queue.get_nowait()
        except Empty:
            break
        if "error" in item:
            st.session_state.error_msg = item["error"]
        elif "response" in item:
            st.session_state.responses.append(item["response"])
        elif "sync_sent" in item:
            st.session_state.responses.append("<sync sent>")
        elif "channels" in item:
            row = {"sample_number": item["sample_number"]}
            row.update({f"ch{i + 1}": v for i, v in enumerate(item["channels"])})
            rows.append(row)

    if rows:
        df = pd.concat([st.session_state.data, pd.DataFrame(rows)], ignore_index=True)
        st.session_state.data = df.tail(_MAX_ROWS).reset_index(drop=True)
    del st.session_state.responses[:-_MAX_RESPONSES]


def _reset_data() -> None:
    st.session_state.data = pd.DataFrame(columns=["sample_number"])
    st.session_state.responses = []
    st.session_state.error_msg = ""


def _sidebar_options() -> EmulatorOptions:
    st.sidebar.header("Board options")
    daisy = st.sidebar.checkbox("Daisy module (16 channels)", value=False)
    firmware = st.sidebar.radio("Firmware", [k.FIRMWARE_V1, k.FIRMWARE_V2])
    line_noise = st.sidebar.selectbox(
        "Line noise", [k.LINE_NOISE_60HZ, k.LINE_NOISE_50HZ, k.LINE_NOISE_NONE]
    )
    default_rate = k.SAMPLE_RATE_125 if daisy else k.SAMPLE_RATE_250
    sample_rate = st.sidebar.number_input(
        "Sample rate (Hz)", min_value=1, max_value=500, value=default_rate
    )
    return EmulatorOptions(
        alpha=st.sidebar.checkbox("Alpha waves", value=True),
        accel=st.sidebar.checkbox("Accelerometer", value=True),
        board_failure=st.sidebar.checkbox("Simulate board failure", value=False),
        daisy=daisy,
        drift=st.sidebar.number_input("Drift (µV / sample)", value=0.0, step=0.1),
        firmware_version=firmware,
        line_noise=line_noise,
        sample_rate=int(sample_rate),
    )


# --------------------------------------------------------------------------- #
# ------------------------------  MAIN UI  ---------------------------------- #
# --------------------------------------------------------------------------- #
def render() -> None:
    st.set_page_config(page_title="Cyton Emulator", layout="wide")
    st.title("OpenBCI Cyton Emulator")

    # ---------- Session state bootstrapping ---------- #
    if "controller" not in st.session_state:
        st.session_state.controller = Controller()  # type: ignore
    if "data" not in st.session_state:
        _reset_data()

    ctrl: Controller = st.session_state.controller  # type: ignore

    # ---------------- Sidebar controls --------------- #
    options = _sidebar_options()

    st.sidebar.header("Connection")
    if st.sidebar.button("Connect"):
        _reset_data()
        if not ctrl.start_emulated(options):
            st.session_state.error_msg = "Emulator did not open."
    if st.sidebar.button("Disconnect"):
        ctrl.stop()

    st.sidebar.write("---")
    st.sidebar.markdown("Samples saved in **`logs/`** folder.")

    # -------------------- Error banner ---------------- #
    if st.session_state.error_msg:
        with st.container():
            st.error(st.session_state.error_msg)
            if st.button("Dismiss error 🗙", key="dismiss_err"):
                st.session_state.error_msg = ""

    # ------------------ Command buttons --------------- #
    cols = st.columns(4)
    for i, (label, command) in enumerate(_COMMANDS.items()):
        if cols[i % 4].button(label, disabled=not ctrl.running):
            ctrl.send(command)

    # ------------------ Main dashboard ---------------- #
    _drain_queue(ctrl)
    df: pd.DataFrame = st.session_state.data

    col_metric_n, col_metric_c = st.columns(2)
    if not df.empty:
        col_metric_n.metric("Last sample number", int(df.sample_number.iloc[-1]))
        col_metric_c.metric("Channel 1 (µV)", f"{df.ch1.iloc[-1]:.2f}")
    else:
        col_metric_n.metric("Last sample number", "—")
        col_metric_c.metric("Channel 1 (µV)", "—")

    col_chart, col_text = st.columns([3, 1])
    with col_chart:
        st.subheader("Channels (µV)")
        st.line_chart(
            df.drop(columns=["sample_number"]) if not df.empty else pd.Series(dtype=float)
        )
    with col_text:
        st.subheader("Responses")
        st.code("\n".join(st.session_state.responses) or "—")

    # --------------- Auto‑refresh tick --------------- #
    if ctrl.queue.qsize() or ctrl.running:
        time.sleep(0.2)
        # streamlit 1.4 has experimental_rerun; >=1.29 has rerun
        (st.rerun if hasattr(st, "rerun") else st.experimental_rerun)()
