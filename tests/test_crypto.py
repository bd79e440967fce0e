import unittest

from pairchat.crypto import CryptoError, RsaOaepCrypto


class RsaOaepCryptoTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.alice = RsaOaepCrypto()
        cls.bob = RsaOaepCrypto()
        cls.alice.import_peer_key(cls.bob.export_public_key())
        cls.bob.import_peer_key(cls.alice.export_public_key())

    def test_exported_record_shape(self):
        record = self.alice.export_public_key()
        self.assertEqual(set(record), {"alg", "e", "key_ops", "n", "kty"})
        self.assertEqual(record["alg"], "RSA-OAEP-256")
        self.assertEqual(record["kty"], "RSA")
        self.assertEqual(record["e"], "AQAB")
        self.assertEqual(record["key_ops"], ["encrypt"])
        self.assertNotIn("=", record["n"])

    def test_export_is_stable(self):
        self.assertEqual(self.alice.export_public_key(), self.alice.export_public_key())

    def test_messages_cross_between_peers(self):
        ciphertext = self.alice.encrypt("hello bob")
        self.assertNotIn("hello", ciphertext)
        self.assertEqual(self.bob.decrypt(ciphertext), "hello bob")
        self.assertEqual(self.alice.decrypt(self.bob.encrypt("héllo alice")), "héllo alice")

    def test_own_ciphertext_cannot_be_read_by_sender(self):
        with self.assertRaises(CryptoError):
            self.alice.decrypt(self.alice.encrypt("for bob only"))

    def test_garbage_ciphertext(self):
        with self.assertRaises(CryptoError):
            self.bob.decrypt("not base64 !!")
        with self.assertRaises(CryptoError):
            self.bob.decrypt("AAAA")

    def test_encrypt_without_peer_key(self):
        with self.assertRaises(CryptoError):
            RsaOaepCrypto().encrypt("hi")

    def test_message_too_long(self):
        with self.assertRaises(CryptoError):
            self.alice.encrypt("x" * 500)

    def test_invalid_records_rejected(self):
        good = self.bob.export_public_key()
        bad = [
            "not a dict",
            {**good, "kty": "EC"},
            {**good, "alg": "RSA-OAEP"},
            {key: value for key, value in good.items() if key != "n"},
            {**good, "e": 65537},
        ]
        for record in bad:
            with self.subTest(record=record):
                with self.assertRaises(CryptoError):
                    RsaOaepCrypto().import_peer_key(record)


if __name__ == "__main__":
    unittest.main()
