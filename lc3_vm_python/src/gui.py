import sys
from PySide6.QtCore import Qt, QObject, Signal, QThread
from PySide6.QtGui import QAction, QIcon, QFont, QTextCursor
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QPlainTextEdit, QVBoxLayout,
    QTableView, QHeaderView, QSplitter, QGroupBox, QFileDialog, QToolBar
)
from PySide6.QtGui import QStandardItemModel, QStandardItem

import common
import architecture as arch
import arithmetic as arith
import console as con
import emulator

class RegisterModel(QStandardItemModel):
    def __init__(self, emulator_state=None):
        super().__init__(arch.reg_count, 2)
        self.es = emulator_state
        self.setHorizontalHeaderLabels(["Register", "Value"])
        self.previous_values = {} # To store previous register values for highlighting

    def set_emulator_state(self, emulator_state):
        self.es = emulator_state
        self.previous_values = {}
        self.update()

    def show_value(self, reg, value):
        if reg.reg_name == "COND":
            return arch.show_cc(value)
        return f"x{arith.word_to_hex4(value)}"

    def update(self):
        if self.es is None:
            return
        for i, reg in enumerate(self.es.register):
            value = reg.get()
            name_item = QStandardItem(reg.reg_name)
            value_item = QStandardItem(self.show_value(reg, value))

            # Highlight registers changed since the last update
            if reg.reg_name in self.previous_values and self.previous_values[reg.reg_name] != value:
                value_item.setBackground(Qt.GlobalColor.yellow)

            self.setItem(i, 0, name_item)
            self.setItem(i, 1, value_item)
            self.previous_values[reg.reg_name] = value

class ConsoleView(QPlainTextEdit):
    """Shows the machine's output and sends typed keys to its console."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.console = None
        self.setReadOnly(True)
        self.setFont(QFont("Courier New", 11))

    def attach(self, console):
        self.console = console

    def append_output(self, text):
        self.moveCursor(QTextCursor.MoveOperation.End)
        self.insertPlainText(text)
        self.moveCursor(QTextCursor.MoveOperation.End)

    def keyPressEvent(self, event):
        text = event.text()
        if self.console is None or not text:
            super().keyPressEvent(event)
            return
        for ch in text:
            c = ord(ch)
            if c == 13:
                c = 10  # Return key gives CR, programs expect LF
            if c < 256:
                self.console.put_key(c)

class EmulatorWorker(QObject):
    output_ready = Signal(str)
    instructions_executed = Signal()
    execution_finished = Signal(str)

    def __init__(self, emulator_state):
        super().__init__()
        self.es = emulator_state
        self.es.console.on_output = self.output_ready.emit

    def run(self):
        es = self.es
        emulator.start(es)
        try:
            while emulator.is_running(es) and not emulator.stop_requested(es):
                emulator.run_slice(es)
                self.instructions_executed.emit()
        except common.ConsoleClosed:
            self.execution_finished.emit("Execution stopped.")
            return
        except common.VMError as e:
            self.execution_finished.emit(f"Fault: {e}")
            return
        finally:
            es.console.flush()
        if emulator.is_halted(es):
            self.execution_finished.emit("Execution halted.")
        else:
            self.execution_finished.emit("Execution stopped.")

    # Called from the gui thread. Closing the console wakes the worker
    # if it is blocked in a read.

    def stop(self):
        emulator.request_stop(self.es)
        self.es.console.close()

class MainWindow(QMainWindow):
    def __init__(self, image_paths=()):
        super().__init__()
        self.setWindowTitle("lc3vm")
        self.setGeometry(100, 100, 1000, 700)

        self.image_paths = list(image_paths)
        self.es = None
        self.emulator_thread = None
        self.emulator_worker = None

        main_splitter = QSplitter(Qt.Orientation.Horizontal)
        self.setCentralWidget(main_splitter)

        # Console (left pane)
        console_group = QGroupBox("Console")
        console_layout = QVBoxLayout(console_group)
        self.console_view = ConsoleView()
        console_layout.addWidget(self.console_view)
        main_splitter.addWidget(console_group)

        # Registers (right pane)
        reg_group = QGroupBox("Registers")
        reg_layout = QVBoxLayout(reg_group)
        self.reg_view = QTableView()
        self.reg_model = RegisterModel()
        self.reg_view.setModel(self.reg_model)
        self.reg_view.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        reg_layout.addWidget(self.reg_view)
        main_splitter.addWidget(reg_group)

        main_splitter.setStretchFactor(0, 3)
        main_splitter.setStretchFactor(1, 1)

        self.toolbar = QToolBar("Main Toolbar")
        self.addToolBar(self.toolbar)

        self.run_action = QAction(QIcon.fromTheme("media-playback-start"), "Run", self)
        self.run_action.triggered.connect(self.run_program)
        self.toolbar.addAction(self.run_action)

        self.stop_action = QAction(QIcon.fromTheme("media-playback-stop"), "Stop", self)
        self.stop_action.triggered.connect(self.stop_execution)
        self.stop_action.setEnabled(False)
        self.toolbar.addAction(self.stop_action)

        self.reset_action = QAction(QIcon.fromTheme("view-refresh"), "Reset", self)
        self.reset_action.triggered.connect(self.reset_emulator)
        self.toolbar.addAction(self.reset_action)

        file_menu = self.menuBar().addMenu("&File")
        open_action = QAction(QIcon.fromTheme("document-open"), "Open image...", self)
        open_action.triggered.connect(self.open_image)
        file_menu.addAction(open_action)
        self.toolbar.addAction(open_action)

        self.reset_emulator()

    def status_message(self, msg):
        self.statusBar().showMessage(msg)

    def _boot(self):
        console = con.QueueConsole()
        self.es = emulator.EmulatorState(console)
        self.console_view.attach(console)
        self.reg_model.set_emulator_state(self.es)
        if not self.image_paths:
            self.status_message("No image loaded")
            return False
        try:
            emulator.boot_images(self.es, self.image_paths)
        except common.ImageLoadError as e:
            self.status_message(str(e))
            return False
        self.reg_model.update()
        self.status_message(f"Ready: {', '.join(self.image_paths)}")
        return True

    def _stop_worker(self):
        if self.emulator_worker is not None:
            self.emulator_worker.execution_finished.disconnect(self.on_execution_finished)
            self.emulator_worker.stop()
        if self.emulator_thread is not None:
            self.emulator_thread.quit()
            self.emulator_thread.wait()
        self.emulator_thread = None
        self.emulator_worker = None

    # A machine stopped between instructions is still Running and resumes
    # where it left off; after a halt or a fault the images are booted
    # again.

    def prepare_run(self):
        if self.es is not None and emulator.is_running(self.es):
            self.es.console.reopen()
            return True
        if self.es is None or emulator.status(self.es) != self.es.ab.SCB_READY:
            return self._boot()
        return True

    def run_program(self):
        if self.emulator_thread is not None:
            return
        if not self.prepare_run():
            return

        self.emulator_thread = QThread()
        self.emulator_worker = EmulatorWorker(self.es)
        self.emulator_worker.moveToThread(self.emulator_thread)
        self.emulator_thread.started.connect(self.emulator_worker.run)
        self.emulator_worker.output_ready.connect(self.console_view.append_output)
        self.emulator_worker.instructions_executed.connect(self.reg_model.update)
        self.emulator_worker.execution_finished.connect(self.on_execution_finished)

        self.run_action.setEnabled(False)
        self.stop_action.setEnabled(True)
        self.console_view.setFocus()
        self.status_message("Running")
        self.emulator_thread.start()

    def stop_execution(self):
        if self.emulator_worker is not None:
            self.emulator_worker.stop()

    def on_execution_finished(self, message):
        self.emulator_thread.quit()
        self.emulator_thread.wait()
        self.emulator_thread = None
        self.emulator_worker = None
        self.reg_model.update()
        self.status_message(message)
        self.run_action.setEnabled(True)
        self.stop_action.setEnabled(False)

    def reset_emulator(self):
        self._stop_worker()
        self.console_view.clear()
        self._boot()
        self.run_action.setEnabled(True)
        self.stop_action.setEnabled(False)

    def open_image(self):
        file_name, _ = QFileDialog.getOpenFileName(self, "Open Program Image", ".", "Images (*.obj);;All Files (*)")
        if file_name:
            self.image_paths = [file_name]
            self.setWindowTitle(f"lc3vm - {file_name}")
            self.reset_emulator()

    def closeEvent(self, event):
        self._stop_worker()
        super().closeEvent(event)

def start_gui(image_paths=()):
    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setStyleSheet("""
    QMainWindow {
        background-color: #1a1a1a;
        color: #e0e0e0;
    }
    QPlainTextEdit {
        background-color: #101010;
        color: #00ff00;
        border: 1px solid #007acc;
        padding: 5px;
    }
    QTableView {
        background-color: #2a2a2a;
        color: #e0e0e0;
        border: 1px solid #007acc;
        gridline-color: #444444;
    }
    QHeaderView::section {
        background-color: #3a3a3a;
        color: #e0e0e0;
        padding: 4px;
        border: 1px solid #007acc;
        font-weight: bold;
    }
    QGroupBox {
        color: #e0e0e0;
        border: 1px solid #007acc;
        border-radius: 4px;
        margin-top: 10px;
    }
    QGroupBox::title {
        subcontrol-origin: margin;
        subcontrol-position: top left;
        padding: 0 3px;
        color: #00ff00;
        font-weight: bold;
    }
    """)
    window = MainWindow(image_paths)
    window.show()
    return app.exec()
