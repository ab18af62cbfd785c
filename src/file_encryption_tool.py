import sys
import os
import logging
import argparse
import getpass
import traceback
from pathlib import Path

from cipher_service import CipherService, Operation, generate_iv, generate_key

# --- Global variable for log file path ---
LOG_FILE_PATH = None

MISSING_FIELDS_MESSAGE = "Please enter all fields (file path, key, and IV)."


def setup_logging():
    """Configure logging to a user-writable directory."""
    global LOG_FILE_PATH
    if logging.getLogger().hasHandlers():
        return
    try:
        if sys.platform == "win32":
            log_dir = Path(os.getenv('APPDATA', Path.home())) / "FileEncryptionTool"
        else:
            log_dir = Path.home() / ".local/share/FileEncryptionTool"

        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / 'file_encryption_tool.log'

        logging.basicConfig(
            filename=log_file, level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s', force=True)
        LOG_FILE_PATH = str(log_file)
        logging.info("--- Logging initialized successfully ---")
        return log_file
    except OSError as e:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s', force=True)
        logging.error(f"Failed to configure file logging. Reason: {e}")
        logging.info("Logging will proceed in the console.")
        return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Encrypt or decrypt a file with AES-256-CBC.")
    parser.add_argument('input_path', nargs='?', help="File to encrypt or decrypt.")
    parser.add_argument('--cli', action='store_true', help="Run in command-line mode.")
    parser.add_argument('-d', '--decrypt', action='store_true', help="Decrypt instead of encrypt.")
    parser.add_argument('-k', '--key', help="Key as 64 hex characters (will prompt if not provided).")
    parser.add_argument('-i', '--iv', help="IV as 32 hex characters (will prompt if not provided).")
    parser.add_argument('--generate-key', action='store_true', help="Print a new random key and exit.")
    parser.add_argument('--generate-iv', action='store_true', help="Print a new random IV and exit.")
    return parser


def run_cli(args, service=None) -> int:
    if args.generate_key or args.generate_iv:
        if args.generate_key:
            print(f"Key: {generate_key()}")
        if args.generate_iv:
            print(f"IV:  {generate_iv()}")
        print("Make sure to save it somewhere!")
        return 0

    key = args.key if args.key is not None else getpass.getpass("Enter key (hex): ")
    iv = args.iv if args.iv is not None else getpass.getpass("Enter IV (hex): ")
    if not args.input_path or not key or not iv:
        print(f"ERROR: {MISSING_FIELDS_MESSAGE}")
        return 1

    service = service or CipherService()
    operation = Operation.DECRYPT if args.decrypt else Operation.ENCRYPT
    result = service.run(operation, args.input_path, key.strip(), iv.strip())
    if not result.ok:
        verb = "Decryption" if args.decrypt else "Encryption"
        print(f"ERROR: {verb} failed: {result.message}")
        return 1
    print(f"File successfully {operation.value}ed.")
    print(f"Output: {result.output_path}")
    return 0


def run_gui() -> int:
    from PyQt6.QtWidgets import QApplication
    from gui import FileEncryptionTool

    app = QApplication(sys.argv)
    window = FileEncryptionTool()
    window.show()
    return app.exec()


def main():
    setup_logging()
    try:
        parser = build_parser()
        args = parser.parse_args()
        if args.cli or args.input_path or args.generate_key or args.generate_iv:
            if not (args.input_path or args.generate_key or args.generate_iv):
                parser.error("An input path is required in CLI mode.")
            sys.exit(run_cli(args))
        else:
            sys.exit(run_gui())
    except Exception as e:
        logging.error(f"A critical error occurred: {e}\n{traceback.format_exc()}")
        try:
            from PyQt6.QtWidgets import QApplication, QMessageBox
            app = QApplication.instance() or QApplication(sys.argv)
            error_box = QMessageBox()
            error_box.setIcon(QMessageBox.Icon.Critical)
            error_box.setText("A critical error occurred.")
            error_box.setInformativeText(f"Please check the log file:\n{LOG_FILE_PATH or 'Console'}\n\nError: {e}")
            error_box.setWindowTitle("Application Error")
            error_box.exec()
        except Exception:
            print(f"A critical error occurred, and the GUI error dialog could not be shown: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
