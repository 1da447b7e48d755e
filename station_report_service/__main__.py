from .report import run

run()
