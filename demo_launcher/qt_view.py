from __future__ import annotations
"""PySide6-based UI for the demo launcher."""
from dataclasses import replace
import logging
from typing import Callable

from PySide6 import QtCore, QtGui, QtWidgets

from .engine import ENGINE_EXECUTABLES, EngineError
from .models import DownloadProgress, ListingEntry, ListingResult
from .presenter import DemoLauncherPresenter, PlaybackResult, ReleaseInfo
from .ui_utils import PackageInfo, entry_label, filter_entries, listing_status, sort_entries

ENTRY_ROLE = QtCore.Qt.UserRole + 1
LOGGER = logging.getLogger(__name__)


class _DispatchBridge(QtCore.QObject):
    run = QtCore.Signal(object)


class DemoLauncherWindow(QtWidgets.QMainWindow):
    """Main window for browsing and playing demos."""

    def __init__(self, presenter: DemoLauncherPresenter | None = None):
        super().__init__()
        self.setWindowTitle("AQtion Demo Launcher")
        self.resize(800, 600)
        self.setMinimumSize(320, 240)

        self._dispatch_bridge = _DispatchBridge()
        self._dispatch_bridge.run.connect(lambda func: func())
        self.presenter = presenter or DemoLauncherPresenter(dispatch=self._dispatch)
        self._package_info = self.presenter.package_info
        self._sort_descending = self.presenter.settings.sort_descending
        self._entries: list[ListingEntry] = []
        self._operation_in_progress = False

        self._create_menu()
        self._create_widgets()
        self._refresh_engine_controls()
        self._refresh_navigation_controls()

        initial = self.presenter.initial_source()
        self.source_combo.setCurrentText(initial)
        self.source_combo.currentTextChanged.connect(self._handle_source_changed)
        QtCore.QTimer.singleShot(0, lambda: self._load_source(initial))
        QtCore.QTimer.singleShot(0, self._check_for_updates)

    def _dispatch(self, func: Callable[[], None]) -> None:
        self._dispatch_bridge.run.emit(func)

    def _create_menu(self) -> None:
        menubar = self.menuBar()
        file_menu = menubar.addMenu("File")
        exit_action = file_menu.addAction("Exit")
        exit_action.triggered.connect(self.close)

        help_menu = menubar.addMenu("Help")
        about_action = help_menu.addAction("About")
        about_action.triggered.connect(self.show_about_dialog)

    def _create_widgets(self) -> None:
        central = QtWidgets.QWidget(self)
        layout = QtWidgets.QHBoxLayout(central)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(12)

        left = QtWidgets.QVBoxLayout()
        self.breadcrumb_label = QtWidgets.QLabel("Root")
        breadcrumb_font = self.breadcrumb_label.font()
        breadcrumb_font.setBold(True)
        self.breadcrumb_label.setFont(breadcrumb_font)
        left.addWidget(self.breadcrumb_label)

        filter_row = QtWidgets.QHBoxLayout()
        self.filter_edit = QtWidgets.QLineEdit()
        self.filter_edit.setPlaceholderText("Filter demos...")
        self.filter_edit.textChanged.connect(self._render_entries)
        filter_row.addWidget(self.filter_edit, stretch=1)
        self.sort_button = QtWidgets.QPushButton()
        self.sort_button.clicked.connect(self._toggle_sort_order)
        self._update_sort_button()
        filter_row.addWidget(self.sort_button)
        left.addLayout(filter_row)

        self.demo_list = QtWidgets.QListWidget()
        self.demo_list.setHorizontalScrollBarPolicy(QtCore.Qt.ScrollBarAsNeeded)
        self.demo_list.itemSelectionChanged.connect(self._refresh_play_controls)
        self.demo_list.itemActivated.connect(self._handle_item_activated)
        self.demo_list.setContextMenuPolicy(QtCore.Qt.CustomContextMenu)
        self.demo_list.customContextMenuRequested.connect(self._handle_list_right_click)
        left.addWidget(self.demo_list, stretch=1)

        self.status_label = QtWidgets.QLabel("")
        left.addWidget(self.status_label)
        self.progress = QtWidgets.QProgressBar()
        self.progress.setRange(0, 100)
        self.progress.setValue(0)
        left.addWidget(self.progress)
        layout.addLayout(left, stretch=1)

        buttons = QtWidgets.QVBoxLayout()
        self.download_engine_button = QtWidgets.QPushButton("Download")
        self.download_engine_button.clicked.connect(self.download_engine)
        self.choose_engine_button = QtWidgets.QPushButton("Choose")
        self.choose_engine_button.clicked.connect(self.choose_engine)
        self.play_button = QtWidgets.QPushButton("Play Demo")
        self.play_button.clicked.connect(self.play_selected)
        self.refresh_button = QtWidgets.QPushButton("Refresh")
        self.refresh_button.clicked.connect(self.refresh)
        self.back_button = QtWidgets.QPushButton("Back")
        self.back_button.clicked.connect(self.go_back)
        self.remove_engine_button = QtWidgets.QPushButton("Remove")
        self.remove_engine_button.clicked.connect(self.remove_engine)
        self.source_combo = QtWidgets.QComboBox()
        self.source_combo.addItems(self.presenter.source_names)
        for widget in (
            self.download_engine_button,
            self.choose_engine_button,
            self.play_button,
            self.refresh_button,
            self.back_button,
            self.remove_engine_button,
            self.source_combo,
        ):
            widget.setFixedWidth(120)
            buttons.addWidget(widget)
        buttons.addStretch(1)
        layout.addLayout(buttons)

        self.setCentralWidget(central)

        self.list_menu = QtWidgets.QMenu(self)
        self.list_menu.addAction("Copy download URL", self._copy_selected_url)

    def show_about_dialog(self, *_: object) -> None:
        dialog = AboutDialog(self, package_info=self._package_info)
        dialog.exec()

    def _handle_source_changed(self, name: str) -> None:
        if name:
            self._load_source(name)

    def _load_source(self, name: str) -> None:
        LOGGER.debug("Loading source '%s'", name)
        self._set_status("Fetching demos...")
        self._start_operation(
            self.presenter.select_source(
                name,
                on_success=self._show_listing,
                on_error=lambda msg: self._show_error("Error", f"Error loading demos:\n{msg}"),
                on_done=self._end_operation,
            )
        )

    def refresh(self, *_: object) -> None:
        self._set_status("Fetching demos...")
        self._start_operation(
            self.presenter.refresh(
                on_success=self._show_listing,
                on_error=lambda msg: self._show_error("Error", f"Error loading demos:\n{msg}"),
                on_done=self._end_operation,
            )
        )

    def go_back(self, *_: object) -> None:
        def handle_success(listing: ListingResult | None) -> None:
            if listing is not None:
                self._show_listing(listing)

        self._start_operation(
            self.presenter.go_back(
                on_success=handle_success,
                on_error=lambda msg: self._show_error("Error", msg),
                on_done=self._end_operation,
            )
        )

    def _handle_item_activated(self, item: QtWidgets.QListWidgetItem) -> None:
        entry = item.data(ENTRY_ROLE)
        if entry is None:
            return
        if entry.is_folder:
            self._set_status("Fetching demos...")
            self._start_operation(
                self.presenter.open_folder(
                    entry,
                    on_success=self._show_listing,
                    on_error=lambda msg: self._show_error("Error", f"Error loading demos:\n{msg}"),
                    on_done=self._end_operation,
                )
            )
        else:
            self.play_selected()

    def play_selected(self, *_: object) -> None:
        entry = self._selected_entry()
        if entry is None or entry.is_folder:
            return
        if self.presenter.engine_path is None:
            QtWidgets.QMessageBox.information(self, "Info", "Please choose or download q2pro first!")
            return

        def handle_success(result: PlaybackResult) -> None:
            if result.map_name and not result.map_available:
                QtWidgets.QMessageBox.warning(
                    self,
                    "Map missing",
                    f"Demo may require map '{result.map_name}' which could not be downloaded. "
                    "The demo may not play correctly.",
                )
            self._set_status("Launching AQtion...")
            self._mark_present(entry)

        self.progress.setValue(0)
        self._start_operation(
            self.presenter.play_demo(
                entry,
                on_status=self._set_status,
                on_progress=self._update_progress,
                on_success=handle_success,
                on_error=lambda msg: self._show_error("Error", msg),
                on_done=self._end_operation,
            )
        )

    def download_engine(self, *_: object) -> None:
        def handle_success(engine_path: object) -> None:
            self._set_status(f"AQtion ready at {engine_path}")
            self.progress.setValue(0)
            self._refresh_engine_controls()
            self.refresh()

        self._start_operation(
            self.presenter.install_engine(
                on_status=self._set_status,
                on_progress=self._update_progress,
                on_success=handle_success,
                on_error=lambda msg: self._show_error("Error", f"Failed to download/extract AQtion.\n{msg}"),
                on_done=self._end_operation,
            )
        )

    def choose_engine(self, *_: object) -> None:
        patterns = " ".join(ENGINE_EXECUTABLES)
        path, _ = QtWidgets.QFileDialog.getOpenFileName(
            self,
            "Select q2pro.exe",
            "",
            f"Q2PRO executable ({patterns})",
        )
        if not path:
            LOGGER.debug("Engine selection dismissed")
            return
        try:
            self.presenter.set_engine_path(path)
        except EngineError as exc:
            self._show_error("Error", str(exc))
            return
        self._set_status(f"q2pro set: {path}")
        self._refresh_engine_controls()
        self.refresh()

    def remove_engine(self, *_: object) -> None:
        if not self.presenter.can_remove_engine:
            QtWidgets.QMessageBox.information(
                self,
                "Remove Not Allowed",
                "The AQtion folder does not appear to have been downloaded by this launcher, "
                "so it will not be removed for safety.",
            )
            return
        confirm = QtWidgets.QMessageBox.question(
            self,
            "Confirm Remove",
            "Delete the downloaded AQtion release? This will remove the entire 'q2pro' folder and all its contents.",
        )
        if confirm != QtWidgets.QMessageBox.Yes:
            return
        try:
            self.presenter.remove_engine()
        except (EngineError, OSError) as exc:
            self._show_error("Error", f"Could not delete folder:\n{exc}")
            return
        self._set_status("AQtion deleted.")
        self._refresh_engine_controls()

    def _check_for_updates(self) -> None:
        def handle_update(release: ReleaseInfo) -> None:
            answer = QtWidgets.QMessageBox.question(
                self,
                "Update Available",
                f"A new version ({release.version}) is available! Download now?",
            )
            if answer == QtWidgets.QMessageBox.Yes and release.url:
                QtGui.QDesktopServices.openUrl(QtCore.QUrl(release.url))

        self.presenter.check_for_updates(on_update_available=handle_update)

    def _show_listing(self, listing: ListingResult) -> None:
        self._entries = list(listing.entries)
        self.breadcrumb_label.setText(self.presenter.breadcrumb)
        self._render_entries()
        self._set_status(listing_status(listing, from_s3=self.presenter.is_s3_source))
        self.progress.setValue(0)

    def _render_entries(self, *_: object) -> None:
        self.demo_list.clear()
        visible = filter_entries(self._entries, self.filter_edit.text())
        for entry in sort_entries(visible, descending=self._sort_descending):
            item = QtWidgets.QListWidgetItem(entry_label(entry))
            item.setData(ENTRY_ROLE, entry)
            self.demo_list.addItem(item)
        self._refresh_play_controls()

    def _toggle_sort_order(self) -> None:
        self._sort_descending = not self._sort_descending
        self.presenter.update_sort_order(self._sort_descending)
        self._update_sort_button()
        self._render_entries()

    def _update_sort_button(self) -> None:
        self.sort_button.setText("Sort A–Z" if self._sort_descending else "Sort Z–A")

    def _mark_present(self, played: ListingEntry) -> None:
        self._entries = [
            replace(entry, is_locally_present=True) if entry == played
            else entry
            for entry in self._entries
        ]
        self._render_entries()

    def _handle_list_right_click(self, pos: QtCore.QPoint) -> None:
        item = self.demo_list.itemAt(pos)
        if item is None:
            return
        self.demo_list.setCurrentItem(item)
        self.list_menu.exec(self.demo_list.viewport().mapToGlobal(pos))

    def _copy_selected_url(self) -> None:
        entry = self._selected_entry()
        if entry is None or entry.is_folder:
            return
        QtWidgets.QApplication.clipboard().setText(self.presenter.download_url(entry))
        self._set_status("Demo URL copied!")

    def _selected_entry(self) -> ListingEntry | None:
        item = self.demo_list.currentItem()
        if item is None:
            return None
        return item.data(ENTRY_ROLE)

    def _update_progress(self, progress: DownloadProgress, text: str) -> None:
        if progress.percent is not None:
            self.progress.setValue(progress.percent)
        self._set_status(text)

    def _start_operation(self, accepted: bool) -> None:
        if not accepted:
            return
        self._operation_in_progress = True
        self._refresh_navigation_controls()

    def _end_operation(self) -> None:
        self._operation_in_progress = False
        self._refresh_navigation_controls()
        self._refresh_engine_controls()

    def _refresh_navigation_controls(self) -> None:
        idle = not self._operation_in_progress
        self.back_button.setEnabled(idle and self.presenter.can_go_back)
        self.refresh_button.setEnabled(idle)
        self.source_combo.setEnabled(idle)
        self.demo_list.setEnabled(idle)
        self._refresh_play_controls()

    def _refresh_play_controls(self) -> None:
        entry = self._selected_entry()
        self.play_button.setEnabled(
            not self._operation_in_progress and entry is not None and not entry.is_folder
        )

    def _refresh_engine_controls(self) -> None:
        has_engine = self.presenter.engine_path is not None
        idle = not self._operation_in_progress
        self.download_engine_button.setEnabled(idle and not has_engine)
        self.choose_engine_button.setEnabled(idle)
        self.remove_engine_button.setEnabled(idle and self.presenter.can_remove_engine)
        if not has_engine and not self.status_label.text():
            self._set_status("Q2PRO not found. Please download or choose manually.")

    def _set_status(self, message: str) -> None:
        self.status_label.setText(message)

    def _show_error(self, title: str, message: str) -> None:
        QtWidgets.QMessageBox.critical(self, title, message)
        self._set_status(message)


class AboutDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget, *, package_info: PackageInfo):
        super().__init__(parent)
        self.setWindowTitle("About")
        layout = QtWidgets.QVBoxLayout(self)
        title = QtWidgets.QLabel(f"{package_info.name} {package_info.version}")
        title_font = title.font()
        title_font.setPointSize(14)
        title_font.setBold(True)
        title.setFont(title_font)
        title.setAlignment(QtCore.Qt.AlignCenter)
        layout.addWidget(title)

        summary = QtWidgets.QLabel(package_info.summary or "")
        summary.setAlignment(QtCore.Qt.AlignCenter)
        summary.setWordWrap(True)
        layout.addWidget(summary)

        if package_info.homepage:
            homepage = QtWidgets.QLabel(f"Homepage: {package_info.homepage}")
            homepage.setAlignment(QtCore.Qt.AlignCenter)
            layout.addWidget(homepage)

        close_button = QtWidgets.QPushButton("Close")
        close_button.clicked.connect(self.accept)
        layout.addWidget(close_button, alignment=QtCore.Qt.AlignCenter)
