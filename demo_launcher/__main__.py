"""Module entry point for the demo launcher application."""
import logging
import os
import sys

from PySide6 import QtWidgets

from .qt_view import DemoLauncherWindow


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("DEMO_LAUNCHER_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QtWidgets.QApplication(sys.argv)
    window = DemoLauncherWindow()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
