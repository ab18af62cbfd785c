import os
from typing import Optional

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QPushButton, QFileDialog, QLineEdit, QLabel
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal, QSettings

from app_state import (
    AppState, Effect, Message, OpenFilePicker, RunOperation, WriteClipboard, perform, update,
    SetFilePath, SetKey, SetIv, Encrypt, Decrypt, PickFile, FileSelected,
    GenerateKey, GenerateIv, CopyKey, CopyIv, ToggleTheme
)
from cipher_service import CipherService

WINDOW_WIDTH = 540
WINDOW_HEIGHT = 600
FIELD_WIDTH = 400

DARK_STYLE = """
    QWidget { background-color: #181616; color: #c5c9c5; }
    QLineEdit { background-color: #282727; border: 1px solid #625e5a; padding: 8px; }
    QPushButton { background-color: #393836; border: 1px solid #625e5a; padding: 6px 12px; }
    QPushButton:disabled { color: #625e5a; }
"""
LIGHT_STYLE = """
    QWidget { background-color: #ffffff; color: #000000; }
    QLineEdit { border: 1px solid #b0b0b0; padding: 8px; }
    QPushButton { background-color: #5e7ce2; color: #ffffff; border: none; padding: 6px 12px; }
    QPushButton:disabled { background-color: #b0b0b0; }
"""


class OperationWorker(QThread):
    """Runs one encrypt/decrypt call off the UI thread and emits its single result."""
    result = pyqtSignal(object)

    def __init__(self, effect: RunOperation, service: CipherService):
        super().__init__()
        self.effect = effect
        self.service = service

    def run(self):
        self.result.emit(perform(self.effect, self.service))


class FileEncryptionTool(QMainWindow):
    def __init__(self, service: Optional[CipherService] = None):
        super().__init__()
        self.setWindowTitle("File Encryption Tool")
        self.setFixedSize(WINDOW_WIDTH, WINDOW_HEIGHT)
        self.service = service or CipherService()
        self.state = AppState()
        self.worker = None
        self.last_directory = ""
        self.load_settings()
        self.init_ui()
        self.render()

    def init_ui(self):
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout(central_widget)
        layout.setContentsMargins(60, 30, 60, 30)
        layout.setSpacing(15)

        # Header
        header = QHBoxLayout()
        header.addStretch()
        self.theme_btn = QPushButton()
        self.theme_btn.clicked.connect(lambda: self.dispatch(ToggleTheme()))
        header.addWidget(self.theme_btn)
        layout.addLayout(header)

        # File path
        select_btn = QPushButton("Select File")
        select_btn.clicked.connect(lambda: self.dispatch(PickFile()))
        layout.addWidget(select_btn, alignment=Qt.AlignmentFlag.AlignLeft)
        self.file_edit = self._line_edit("Enter the file path...", lambda text: self.dispatch(SetFilePath(text)))
        layout.addWidget(self.file_edit)

        # Key
        layout.addLayout(self._button_row(("Generate Key", GenerateKey()), ("Copy Key", CopyKey())))
        self.key_edit = self._line_edit("Enter encryption key...", lambda text: self.dispatch(SetKey(text)))
        layout.addWidget(self.key_edit)

        # IV
        layout.addLayout(self._button_row(("Generate IV", GenerateIv()), ("Copy IV", CopyIv())))
        self.iv_edit = self._line_edit("Enter initialization vector...", lambda text: self.dispatch(SetIv(text)))
        layout.addWidget(self.iv_edit)

        # Actions
        self.encrypt_btn = QPushButton("Encrypt")
        self.encrypt_btn.setFixedWidth(FIELD_WIDTH)
        self.encrypt_btn.clicked.connect(lambda: self.dispatch(Encrypt()))
        layout.addWidget(self.encrypt_btn)
        self.decrypt_btn = QPushButton("Decrypt")
        self.decrypt_btn.setFixedWidth(FIELD_WIDTH)
        self.decrypt_btn.clicked.connect(lambda: self.dispatch(Decrypt()))
        layout.addWidget(self.decrypt_btn)

        self.status_label = QLabel()
        self.status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.status_label.setWordWrap(True)
        layout.addWidget(self.status_label)
        layout.addStretch()

    def _line_edit(self, placeholder, on_edit) -> QLineEdit:
        edit = QLineEdit()
        edit.setPlaceholderText(placeholder)
        edit.setFixedWidth(FIELD_WIDTH)
        edit.textEdited.connect(on_edit)
        return edit

    def _button_row(self, *buttons) -> QHBoxLayout:
        row = QHBoxLayout()
        row.setSpacing(10)
        for text, message in buttons:
            btn = QPushButton(text)
            btn.clicked.connect(lambda _checked=False, m=message: self.dispatch(m))
            row.addWidget(btn)
        row.addStretch()
        return row

    def dispatch(self, message: Message):
        effect = update(self.state, message)
        self.render()
        if effect is not None:
            self.run_effect(effect)

    def run_effect(self, effect: Effect):
        if isinstance(effect, WriteClipboard):
            QApplication.clipboard().setText(effect.text)
        elif isinstance(effect, OpenFilePicker):
            path, _ = QFileDialog.getOpenFileName(self, "Select File", self.last_directory)
            if path:
                self.last_directory = os.path.dirname(path)
            self.dispatch(FileSelected(path or None))
        elif isinstance(effect, RunOperation):
            self.worker = OperationWorker(effect, self.service)
            self.worker.result.connect(self.dispatch)
            self.worker.start()

    def render(self):
        # setText leaves textEdited silent, so re-syncing does not loop
        for edit, value in ((self.file_edit, self.state.file_path),
                            (self.key_edit, self.state.key),
                            (self.iv_edit, self.state.iv)):
            if edit.text() != value:
                edit.setText(value)
        self.status_label.setText(self.state.status_message)
        self.theme_btn.setText("Dark >> Off" if self.state.dark_mode else "Dark >> On")
        self.setStyleSheet(DARK_STYLE if self.state.dark_mode else LIGHT_STYLE)
        self.encrypt_btn.setEnabled(not self.state.busy)
        self.decrypt_btn.setEnabled(not self.state.busy)

    def load_settings(self):
        settings = QSettings("FileEncryptionTool", "Settings")
        self.state.dark_mode = settings.value("dark_mode", True, type=bool)
        self.last_directory = settings.value("last_directory", "")

    def closeEvent(self, event):
        if self.worker is not None:
            self.worker.wait()
        settings = QSettings("FileEncryptionTool", "Settings")
        settings.setValue("dark_mode", self.state.dark_mode)
        settings.setValue("last_directory", self.last_directory)
        event.accept()
