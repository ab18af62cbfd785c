import logging
from dataclasses import dataclass
from typing import Optional, Union

from cipher_service import CipherService, Operation, OperationResult, generate_iv, generate_key

PATH_DISPLAY_LENGTH = 36


@dataclass
class AppState:
    """Everything the window shows. Owned by the shell, mutated only by update()."""
    file_path: str = ''
    key: str = ''
    iv: str = ''
    status_message: str = 'Ready'
    dark_mode: bool = True
    busy: bool = False


# --- Messages ---
@dataclass(frozen=True)
class SetFilePath:
    path: str


@dataclass(frozen=True)
class SetKey:
    key: str


@dataclass(frozen=True)
class SetIv:
    iv: str


@dataclass(frozen=True)
class Encrypt:
    pass


@dataclass(frozen=True)
class Decrypt:
    pass


@dataclass(frozen=True)
class PickFile:
    pass


@dataclass(frozen=True)
class FileSelected:
    path: Optional[str]


@dataclass(frozen=True)
class GenerateKey:
    pass


@dataclass(frozen=True)
class GenerateIv:
    pass


@dataclass(frozen=True)
class CopyKey:
    pass


@dataclass(frozen=True)
class CopyIv:
    pass


@dataclass(frozen=True)
class ToggleTheme:
    pass


@dataclass(frozen=True)
class OperationFinished:
    operation: Operation
    result: OperationResult


Message = Union[SetFilePath, SetKey, SetIv, Encrypt, Decrypt, PickFile, FileSelected,
                GenerateKey, GenerateIv, CopyKey, CopyIv, ToggleTheme, OperationFinished]


# --- Effects ---
@dataclass(frozen=True)
class WriteClipboard:
    text: str


@dataclass(frozen=True)
class OpenFilePicker:
    pass


@dataclass(frozen=True)
class RunOperation:
    operation: Operation
    file_path: str
    key: str
    iv: str


Effect = Union[WriteClipboard, OpenFilePicker, RunOperation]


def truncate_middle(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    half = max_length // 2
    return f"{text[:half]}....{text[len(text) - half:]}"


def _start_operation(state: AppState, operation: Operation, missing_fields_message: str) -> Optional[Effect]:
    if state.busy:
        state.status_message = "An operation is already in progress."
        return None
    if not state.file_path or not state.key or not state.iv:
        state.status_message = missing_fields_message
        return None
    state.busy = True
    state.status_message = "Encrypting..." if operation is Operation.ENCRYPT else "Decrypting..."
    return RunOperation(operation, state.file_path, state.key, state.iv)


def _finish_operation(state: AppState, message: OperationFinished):
    state.busy = False
    result = message.result
    if message.operation is Operation.ENCRYPT:
        state.status_message = ("File successfully encrypted." if result.ok
                                else f"Encryption failed: {result.message}")
    else:
        state.status_message = ("File successfully decrypted." if result.ok
                                else f"Decryption failed: {result.message}")


def _copy(state: AppState, value: str, label: str) -> Optional[Effect]:
    if not value:
        state.status_message = f"{label} field is empty, nothing to copy."
        return None
    state.status_message = f"{label} has been copied."
    return WriteClipboard(value)


def update(state: AppState, message: Message) -> Optional[Effect]:
    """Apply one message to the state and return the side effect to run, if any."""
    if isinstance(message, SetFilePath):
        state.file_path = message.path
    elif isinstance(message, SetKey):
        state.key = message.key
    elif isinstance(message, SetIv):
        state.iv = message.iv
    elif isinstance(message, ToggleTheme):
        state.dark_mode = not state.dark_mode
    elif isinstance(message, Encrypt):
        return _start_operation(state, Operation.ENCRYPT, "Please enter all fields (file path, key, and IV).")
    elif isinstance(message, Decrypt):
        return _start_operation(state, Operation.DECRYPT, "Please enter file path, key, and IV.")
    elif isinstance(message, OperationFinished):
        _finish_operation(state, message)
    elif isinstance(message, PickFile):
        return OpenFilePicker()
    elif isinstance(message, FileSelected):
        if message.path:
            state.file_path = message.path
            state.status_message = f"File selected: {truncate_middle(message.path, PATH_DISPLAY_LENGTH)}"
        else:
            state.status_message = "No file selected."
    elif isinstance(message, GenerateKey):
        state.key = generate_key()
        state.status_message = "Key generated. Make sure to save it somewhere!"
    elif isinstance(message, GenerateIv):
        state.iv = generate_iv()
        state.status_message = "IV generated. Make sure to save it somewhere!"
    elif isinstance(message, CopyKey):
        return _copy(state, state.key, "Key")
    elif isinstance(message, CopyIv):
        return _copy(state, state.iv, "IV")
    else:
        raise TypeError(f"Unknown message: {message!r}")
    return None


def perform(effect: RunOperation, service: Optional[CipherService] = None) -> OperationFinished:
    """Run an operation effect to completion and wrap its result as a message."""
    service = service or CipherService()
    logging.info(f"Running {effect.operation.value} on {effect.file_path}")
    result = service.run(effect.operation, effect.file_path, effect.key, effect.iv)
    return OperationFinished(effect.operation, result)
