from cyton_emulator.ui.main_ui import render

render()
