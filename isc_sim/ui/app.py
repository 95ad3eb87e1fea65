from isc_sim.ui.main_ui import render

render()
