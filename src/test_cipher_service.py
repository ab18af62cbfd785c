import unittest
import os
import tempfile
import shutil
from cipher_service import (
    CipherService, ErrorKind, Operation, build_cipher, decode_key, decode_iv, decrypt_bytes,
    encrypt_bytes, decrypt_output_path, encrypted_output_path, generate_key, generate_iv,
    InvalidKeyFormat, InvalidIvFormat, InvalidKeyOrIvLength, DecryptionError, BLOCK_SIZE
)

KEY = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"
IV = "0f0e0d0c0b0a09080706050403020100"


class TestDecoding(unittest.TestCase):
    def test_decode_key_and_iv(self):
        self.assertEqual(len(decode_key(KEY)), 32)
        self.assertEqual(len(decode_iv(IV)), 16)
        self.assertEqual(decode_key(KEY.upper()), decode_key(KEY))

    def test_non_hex_is_format_error(self):
        with self.assertRaises(InvalidKeyFormat):
            decode_key("zz" + KEY[2:])
        with self.assertRaises(InvalidIvFormat):
            decode_iv("g" * 32)

    def test_odd_length_and_whitespace_are_format_errors(self):
        with self.assertRaises(InvalidKeyFormat):
            decode_key(KEY[:-1])
        with self.assertRaises(InvalidKeyFormat):
            decode_key(KEY[:32] + " " + KEY[32:])
        with self.assertRaises(InvalidIvFormat):
            decode_iv("é" * 32)

    def test_wrong_lengths_rejected_by_cipher(self):
        with self.assertRaises(InvalidKeyOrIvLength):
            build_cipher(decode_key(KEY[:62]), decode_iv(IV))
        with self.assertRaises(InvalidKeyOrIvLength):
            build_cipher(decode_key(KEY + "aa"), decode_iv(IV))
        with self.assertRaises(InvalidKeyOrIvLength):
            build_cipher(decode_key(KEY), decode_iv(IV[:30]))
        # AES-128 sized keys are not accepted either
        with self.assertRaises(InvalidKeyOrIvLength):
            build_cipher(decode_key(KEY[:32]), decode_iv(IV))


class TestTransform(unittest.TestCase):
    def setUp(self):
        self.key = decode_key(KEY)
        self.iv = decode_iv(IV)

    def test_roundtrip_various_lengths(self):
        for length in (0, 1, 5, 15, 16, 17, 31, 32, 100, 4096):
            data = os.urandom(length)
            ciphertext = encrypt_bytes(build_cipher(self.key, self.iv), data)
            expected = length + (BLOCK_SIZE - length % BLOCK_SIZE)
            self.assertEqual(len(ciphertext), expected, f"Padded length wrong for {length} bytes")
            self.assertEqual(decrypt_bytes(build_cipher(self.key, self.iv), ciphertext), data)

    def test_empty_ciphertext_fails(self):
        with self.assertRaises(DecryptionError):
            decrypt_bytes(build_cipher(self.key, self.iv), b"")

    def test_unaligned_ciphertext_fails(self):
        ciphertext = encrypt_bytes(build_cipher(self.key, self.iv), b"hello world")
        with self.assertRaises(DecryptionError):
            decrypt_bytes(build_cipher(self.key, self.iv), ciphertext[:-1])

    def test_wrong_key_mostly_fails_padding(self):
        ciphertext = encrypt_bytes(build_cipher(self.key, self.iv), b"A" * 40)
        failures = 0
        for _ in range(50):
            try:
                decrypt_bytes(build_cipher(os.urandom(32), self.iv), ciphertext)
            except DecryptionError:
                failures += 1
        # A random last block still has roughly a 1/256 chance of valid padding
        self.assertGreaterEqual(failures, 40)

    def test_mutated_padding_block_fails(self):
        ciphertext = bytearray(encrypt_bytes(build_cipher(self.key, self.iv), b"x" * 16))
        # Flipping the low bit of the IV-side byte turns padding 0x10 into 0x11
        ciphertext[-17] ^= 0x01
        with self.assertRaises(DecryptionError):
            decrypt_bytes(build_cipher(self.key, self.iv), bytes(ciphertext))


class TestOutputPaths(unittest.TestCase):
    def test_decrypt_output_path(self):
        self.assertEqual(decrypt_output_path("report.pdf.enc"), "report_decrypted.pdf")
        self.assertEqual(decrypt_output_path("archive.enc"), "archive_decrypted")
        self.assertEqual(decrypt_output_path("notes"), "notes_decrypted")
        self.assertEqual(decrypt_output_path("notes.txt"), "notes.txt_decrypted")

    def test_only_one_enc_layer_is_stripped(self):
        self.assertEqual(decrypt_output_path("a.txt.enc.enc"), "a.txt_decrypted.enc")

    def test_encrypted_output_path_always_appends(self):
        self.assertEqual(encrypted_output_path("a.txt"), "a.txt.enc")
        self.assertEqual(encrypted_output_path("a.txt.enc"), "a.txt.enc.enc")


class TestGeneration(unittest.TestCase):
    def test_generate_key(self):
        key = generate_key()
        self.assertEqual(len(key), 64)
        self.assertTrue(all(c in "0123456789abcdef" for c in key))
        self.assertNotEqual(key, generate_key())

    def test_generate_iv(self):
        iv = generate_iv()
        self.assertEqual(len(iv), 32)
        self.assertTrue(all(c in "0123456789abcdef" for c in iv))
        self.assertNotEqual(iv, generate_iv())

    def test_generated_values_build_a_cipher(self):
        build_cipher(decode_key(CipherService.generate_key()), decode_iv(CipherService.generate_iv()))


class TestCipherService(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.service = CipherService()
        self.test_file = os.path.join(self.temp_dir, "hello.txt")
        with open(self.test_file, 'wb') as f:
            f.write(b"hello")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_hello_end_to_end(self):
        result = self.service.encrypt(self.test_file, KEY, IV)
        self.assertTrue(result.ok, result.message)
        encrypted_file = self.test_file + ".enc"
        self.assertEqual(result.output_path, encrypted_file)
        self.assertEqual(os.path.getsize(encrypted_file), 16)
        with open(self.test_file, 'rb') as f:
            self.assertEqual(f.read(), b"hello", "Source file must be left untouched")

        result = self.service.decrypt(encrypted_file, KEY, IV)
        self.assertTrue(result.ok, result.message)
        decrypted_file = os.path.join(self.temp_dir, "hello_decrypted.txt")
        self.assertEqual(result.output_path, decrypted_file)
        with open(decrypted_file, 'rb') as f:
            self.assertEqual(f.read(), b"hello")
        self.assertTrue(os.path.exists(encrypted_file), "Encrypted input must not be deleted")

    def test_empty_file_roundtrip(self):
        empty_file = os.path.join(self.temp_dir, "empty.bin")
        open(empty_file, 'wb').close()
        result = self.service.run(Operation.ENCRYPT, empty_file, KEY, IV)
        self.assertTrue(result.ok)
        self.assertEqual(os.path.getsize(empty_file + ".enc"), 16)
        result = self.service.run(Operation.DECRYPT, empty_file + ".enc", KEY, IV)
        self.assertTrue(result.ok)
        self.assertEqual(os.path.getsize(os.path.join(self.temp_dir, "empty_decrypted.bin")), 0)

    def test_error_kinds(self):
        cases = [
            ("zz" + KEY[2:], IV, ErrorKind.INVALID_KEY_FORMAT),
            (KEY, "zz" + IV[2:], ErrorKind.INVALID_IV_FORMAT),
            (KEY[:62], IV, ErrorKind.INVALID_KEY_OR_IV_LENGTH),
            (KEY + "00", IV, ErrorKind.INVALID_KEY_OR_IV_LENGTH),
        ]
        for key, iv, kind in cases:
            result = self.service.encrypt(self.test_file, key, iv)
            self.assertFalse(result.ok)
            self.assertEqual(result.error, kind)
            self.assertIsNone(result.output_path)
        self.assertFalse(os.path.exists(self.test_file + ".enc"))

    def test_key_checked_before_file_is_read(self):
        missing = os.path.join(self.temp_dir, "missing.txt")
        result = self.service.encrypt(missing, "not hex", IV)
        self.assertEqual(result.error, ErrorKind.INVALID_KEY_FORMAT)

    def test_missing_file_is_read_error(self):
        missing = os.path.join(self.temp_dir, "missing.txt")
        for run in (self.service.encrypt, self.service.decrypt):
            result = run(missing, KEY, IV)
            self.assertEqual(result.error, ErrorKind.FILE_READ_ERROR)
            self.assertEqual(result.message, "Failed to read file")

    def test_unwritable_output_is_write_error(self):
        # A directory squatting on the output path makes the write fail even as root
        os.mkdir(self.test_file + ".enc")
        result = self.service.encrypt(self.test_file, KEY, IV)
        self.assertEqual(result.error, ErrorKind.FILE_WRITE_ERROR)
        self.assertEqual(result.message, "Failed to write encrypted file")

    def test_unwritable_decrypt_output_is_write_error(self):
        self.assertTrue(self.service.encrypt(self.test_file, KEY, IV).ok)
        os.mkdir(os.path.join(self.temp_dir, "hello_decrypted.txt"))
        result = self.service.decrypt(self.test_file + ".enc", KEY, IV)
        self.assertEqual(result.error, ErrorKind.FILE_WRITE_ERROR)
        self.assertEqual(result.message, "Failed to write decrypted file")

    def test_truncated_ciphertext_is_decryption_error(self):
        self.assertTrue(self.service.encrypt(self.test_file, KEY, IV).ok)
        encrypted_file = self.test_file + ".enc"
        with open(encrypted_file, 'rb') as f:
            data = f.read()
        with open(encrypted_file, 'wb') as f:
            f.write(data[:-3])
        result = self.service.decrypt(encrypted_file, KEY, IV)
        self.assertEqual(result.error, ErrorKind.DECRYPTION_ERROR)
        self.assertEqual(result.message, "Failed to decrypt file")
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, "hello_decrypted.txt")))

    def test_plain_file_without_enc_suffix(self):
        self.assertTrue(self.service.encrypt(self.test_file, KEY, IV).ok)
        renamed = os.path.join(self.temp_dir, "blob")
        os.rename(self.test_file + ".enc", renamed)
        result = self.service.decrypt(renamed, KEY, IV)
        self.assertTrue(result.ok)
        self.assertEqual(result.output_path, renamed + "_decrypted")


if __name__ == '__main__':
    unittest.main()
