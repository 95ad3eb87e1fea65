"""
Streamlit presentation layer.
Run `streamlit run isc_sim/ui/app.py`
"""

from __future__ import annotations

import time
from queue import Empty
from typing import List

import pandas as pd
import streamlit as st

from ..controller.controller import Controller
from ..devices.base import SimulatorError
from ..utils.command_log import CommandRecord
from ..utils.ports import available_ports

COLUMNS = ["timestamp", "command", "recognized", "response"]


# --------------------------------------------------------------------------- #
# ------------------------------  HELPERS  ---------------------------------- #
# --------------------------------------------------------------------------- #
def records_to_frame(records: List[CommandRecord]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "timestamp": pd.Timestamp(r.timestamp),
                "command": r.raw_input,
                "recognized": r.recognized,
                "response": r.response_sent,
            }
            for r in records
        ],
        columns=COLUMNS,
    )


def _drain_queue(ctrl: Controller) -> None:
    """Pull ALL queued records into the session‑level DataFrame."""
    fresh: List[CommandRecord] = []
    while True:
        try:
            fresh.append(ctrl.queue.get_nowait())
        except Empty:
            break
    if fresh:
        st.session_state.data = pd.concat(
            [st.session_state.data, records_to_frame(fresh)], ignore_index=True
        )


def _reset_data() -> None:
    st.session_state.data = pd.DataFrame(columns=COLUMNS)
    st.session_state.error_msg = ""


# --------------------------------------------------------------------------- #
# ------------------------------  MAIN UI  ---------------------------------- #
# --------------------------------------------------------------------------- #
def render() -> None:
    st.set_page_config(page_title="ISC Simulator", layout="wide")
    st.title("MiniCircuits ISC Simulator")

    # ---------- Session state bootstrapping ---------- #
    if "controller" not in st.session_state:
        st.session_state.controller = Controller(ui_queue=True)  # type: ignore
    if "data" not in st.session_state:
        _reset_data()
    if "error_msg" not in st.session_state:
        st.session_state.error_msg = ""

    ctrl: Controller = st.session_state.controller  # type: ignore

    # ---------------- Sidebar controls --------------- #
    st.sidebar.header("Connection")

    mode = st.sidebar.radio("Port", ["Virtual pair (socat)", "Existing serial port"])
    baud = st.sidebar.selectbox(
        "Baud rate",
        [9600, 19200, 38400, 57600, 115200],
        index=4,
    )

    try:
        if mode.startswith("Virtual"):
            if st.sidebar.button("Start Simulator"):
                ctrl.start_virtual(baudrate=baud)
        else:
            port = st.sidebar.selectbox("Device‑side port", available_ports())
            if st.sidebar.button("Start Simulator") and port:
                ctrl.start_serial(port, baudrate=baud)
    except SimulatorError as ex:
        st.session_state.error_msg = str(ex)

    if st.sidebar.button("Stop"):
        ctrl.stop()

    if st.sidebar.button("Clear table"):
        _reset_data()

    st.sidebar.write("---")
    if ctrl.client_port:
        st.sidebar.markdown(f"Connect your driver to **`{ctrl.client_port}`**.")
    if ctrl.csv_path:
        st.sidebar.markdown(f"Commands logged to **`{ctrl.csv_path}`**.")

    # -------------------- Error banner ---------------- #
    if st.session_state.error_msg:
        with st.container():
            st.error(st.session_state.error_msg)
            if st.button("Dismiss error 🗙", key="dismiss_err"):
                st.session_state.error_msg = ""

    # ------------------ Main dashboard ---------------- #
    _drain_queue(ctrl)
    df: pd.DataFrame = st.session_state.data
    state = ctrl.device.query()

    col_f, col_rf, col_p, col_t, col_up = st.columns(5)
    col_f.metric("Frequency (Hz)", f"{state['frequency']:,}")
    col_rf.metric("RF output", "ON" if state["rf_output_enabled"] else "OFF")
    col_p.metric("Phase (°)", state["phase"])
    col_t.metric("Temperature (°C)", f"{state['temperature']:.1f}")
    col_up.metric("Uptime (s)", state["uptime"])
    st.caption(f"Status flags: {state['status_flags']:#x}")

    st.subheader(f"Command log ({len(df)} commands)")
    st.dataframe(df.iloc[::-1], use_container_width=True)

    # --------------- Auto‑refresh tick --------------- #
    if ctrl.running:
        time.sleep(0.5)
        # streamlit 1.4 has experimental_rerun; >=1.29 has rerun
        (st.rerun if hasattr(st, "rerun") else st.experimental_rerun)()
