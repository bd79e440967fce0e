import json
import unittest
from dataclasses import replace

from pairchat.envelope import ScrollEvent, encode
from pairchat.events import (
    CreateChat,
    Decrypted,
    DecryptFailed,
    Encrypted,
    InputChanged,
    JoinChat,
    KeyExported,
    KeyImported,
    Log,
    Navigate,
    RelayClosed,
    RelayText,
    RequestDecrypt,
    RequestEncrypt,
    RequestKeyExport,
    RequestKeyImport,
    Scrolled,
    ScrollToBottom,
    ScrollToBottomClicked,
    SendFrame,
    SubmitMessage,
    Tick,
)
from pairchat.session import apply
from pairchat.state import (
    Flags,
    Importing,
    IsTyping,
    Joining,
    Message,
    NotTyping,
    Ready,
    Role,
    Start,
    WaitingForAId,
    WaitingForBKey,
    init_model,
    share_url,
    snapshot,
)

KEY_A = {"alg": "RSA-OAEP-256", "e": "AQAB", "key_ops": ["encrypt"], "n": "a-modulus", "kty": "RSA"}
KEY_B = {"alg": "RSA-OAEP-256", "e": "AQAB", "key_ops": ["encrypt"], "n": "b-modulus", "kty": "RSA"}


def relay(frame: dict) -> RelayText:
    return RelayText(json.dumps(frame))


def ready_model(**changes):
    model = replace(init_model(Flags()), status=Ready("peer", NotTyping()))
    return replace(model, **changes)


class MessageDeliveryTests(unittest.TestCase):
    def test_ciphertext_then_plaintext_appends_peer_message(self):
        model = ready_model(status=Ready("peer", IsTyping(3)))

        model, effects = apply(RelayText(encode("me", {"message": "Y3Q="})), model)
        self.assertEqual(effects, [RequestDecrypt("Y3Q=")])
        self.assertEqual(model.status, Ready("peer", IsTyping(3)))

        model, effects = apply(Decrypted("hello"), model)
        self.assertEqual(model.messages[-1], Message(False, "hello"))
        self.assertEqual(model.status, Ready("peer", NotTyping()))
        self.assertEqual(effects, [ScrollToBottom()])

    def test_plaintext_outside_ready_is_not_appended(self):
        model = init_model(Flags())
        model, effects = apply(Decrypted("late"), model)
        self.assertEqual(model.messages, ())
        self.assertEqual([e.tag for e in effects], ["oops"])

    def test_decrypt_failure_drops_message(self):
        model = ready_model()
        next_model, effects = apply(DecryptFailed("bad padding"), model)
        self.assertEqual(next_model, model)
        self.assertEqual(effects, [Log("decrypt-failed", "bad padding")])


class SendingTests(unittest.TestCase):
    def test_submit_appends_own_message_and_requests_encryption(self):
        model = ready_model(input="  hi there  ")
        model, effects = apply(SubmitMessage(), model)
        self.assertEqual(model.input, "")
        self.assertEqual(model.messages, (Message(True, "hi there"),))
        self.assertEqual(effects, [RequestEncrypt("hi there"), ScrollToBottom()])

    def test_encrypted_text_is_sent_to_peer(self):
        model = ready_model()
        _, effects = apply(Encrypted("Y3Q="), model)
        self.assertEqual(effects, [SendFrame({"to": "peer", "body": {"message": "Y3Q="}})])

    def test_submit_before_ready_is_a_mismatch(self):
        model = replace(init_model(Flags()), input="hi")
        next_model, effects = apply(SubmitMessage(), model)
        self.assertEqual(next_model, model)
        self.assertEqual([e.tag for e in effects], ["oops"])

    def test_blank_input_is_rejected(self):
        model = ready_model(input="   ")
        next_model, effects = apply(SubmitMessage(), model)
        self.assertEqual(next_model.messages, ())
        self.assertEqual([e.tag for e in effects], ["invalid-input"])

    def test_multibyte_input_over_byte_limit_is_rejected(self):
        model = ready_model(input="é" * 150)
        next_model, effects = apply(SubmitMessage(), model)
        self.assertEqual(next_model.messages, ())
        self.assertEqual(next_model.input, "é" * 150)
        self.assertEqual([type(e).__name__ for e in effects], ["Log"])
        self.assertEqual(effects[0].tag, "invalid-input")

    def test_multibyte_input_within_byte_limit_is_sent(self):
        model = ready_model(input="é" * 95)
        next_model, effects = apply(SubmitMessage(), model)
        self.assertEqual(len(next_model.messages), 1)
        self.assertEqual(effects[0], RequestEncrypt("é" * 95))

    def test_encrypted_after_disconnect_is_ignored(self):
        model = init_model(Flags())
        _, effects = apply(Encrypted("Y3Q="), model)
        self.assertEqual([e.tag for e in effects], ["oops"])


class RelayTextTests(unittest.TestCase):
    def test_malformed_frame_is_logged_and_dropped(self):
        model = ready_model()
        for text in ("not json", "[1, 2]", '{"type": "unknown"}'):
            with self.subTest(text=text):
                next_model, effects = apply(RelayText(text), model)
                self.assertIs(next_model, model)
                self.assertEqual(len(effects), 1)
                self.assertEqual(effects[0].tag, "decode-error")

    def test_connected_records_own_id_only(self):
        model = init_model(Flags())
        next_model, effects = apply(relay({"type": "connected", "connId": "me"}), model)
        self.assertEqual(next_model.own_conn_id, "me")
        self.assertEqual(next_model.status, Start())
        self.assertEqual(effects, [])

    def test_relay_closed_returns_to_start(self):
        model, effects = apply(RelayClosed("eof"), ready_model())
        self.assertEqual(model.status, Start())
        self.assertFalse(model.connected)
        self.assertIn(Navigate("/"), effects)


class HandshakeThroughSessionTests(unittest.TestCase):
    def test_creator_path(self):
        model = init_model(Flags(origin="https://chat.example"))
        model, _ = apply(relay({"type": "connected", "connId": "a-id"}), model)

        model, effects = apply(CreateChat(), model)
        self.assertEqual(model.status, Joining(Role.CREATOR))
        self.assertEqual(effects, [RequestKeyExport()])
        self.assertIsNone(share_url(model))

        model, _ = apply(KeyExported(KEY_A), model)
        self.assertEqual(model.status, WaitingForAId(KEY_A))
        self.assertEqual(share_url(model), "https://chat.example/a-id")

        model, _ = apply(relay({"type": "waiting", "peerConnId": "b-id", "chatId": "a-id"}), model)
        self.assertEqual(model.status, WaitingForBKey(KEY_A, "b-id", "a-id"))

        model, effects = apply(RelayText(encode("a-id", {"key": KEY_B})), model)
        self.assertEqual(model.status, Importing("b-id"))
        self.assertEqual(
            effects,
            [SendFrame({"to": "b-id", "body": {"key": KEY_A}}), RequestKeyImport(KEY_B)],
        )

        model, effects = apply(KeyImported(), model)
        self.assertEqual(model.status, Ready("b-id", NotTyping()))
        self.assertEqual(effects, [Navigate("/")])

    def test_join_uses_chat_id_from_flags(self):
        model = init_model(Flags(chat_id="a-id"))
        model, effects = apply(JoinChat(), model)
        self.assertEqual(model.status, Joining(Role.JOINER, chat_id="a-id"))
        self.assertEqual(effects, [RequestKeyExport()])

    def test_join_without_any_chat_id_is_a_mismatch(self):
        model = init_model(Flags())
        next_model, effects = apply(JoinChat(), model)
        self.assertEqual(next_model.status, Start())
        self.assertEqual([e.tag for e in effects], ["oops"])

    def test_room_unavailable_resets_join(self):
        model = init_model(Flags(chat_id="gone"))
        model, _ = apply(JoinChat(), model)
        model, _ = apply(KeyExported(KEY_B), model)
        model, effects = apply(relay({"type": "room_unavailable"}), model)
        self.assertEqual(model.status, Start())
        self.assertIn(Navigate("/"), effects)


class TimerAndScrollTests(unittest.TestCase):
    def test_tick_updates_time_only(self):
        model = ready_model(input="draft")
        next_model, effects = apply(Tick(99999), model)
        self.assertEqual(next_model, replace(model, time=99999))
        self.assertEqual(effects, [])

    def test_scroll_away_from_bottom_shows_arrow(self):
        model = init_model(Flags())
        event = ScrollEvent(scroll_height=2000, scroll_top=100, client_height=500)
        model, effects = apply(Scrolled(event), model)
        self.assertTrue(model.show_scroll_arrow)
        self.assertEqual(effects, [])

    def test_scroll_to_bottom_click(self):
        model = replace(init_model(Flags()), show_scroll_arrow=True)
        model, effects = apply(ScrollToBottomClicked(), model)
        self.assertFalse(model.show_scroll_arrow)
        self.assertEqual(effects, [ScrollToBottom()])

    def test_input_updates_buffer_and_timestamp(self):
        model = replace(init_model(Flags()), time=42)
        model, effects = apply(InputChanged("typ"), model)
        self.assertEqual(model.input, "typ")
        self.assertEqual(model.last_input_time, 42)
        self.assertEqual(effects, [])


class SnapshotTests(unittest.TestCase):
    def test_snapshot_is_json_safe(self):
        model = ready_model(
            status=Ready("peer", IsTyping(1)),
            messages=(Message(True, "a"), Message(False, "b")),
        )
        data = json.loads(json.dumps(snapshot(model)))
        self.assertEqual(data["status"], {"name": "Ready", "peer_conn_id": "peer", "typing": True})
        self.assertEqual(data["messages"], [{"self": True, "content": "a"}, {"self": False, "content": "b"}])
        self.assertEqual(data["device"], "desktop")

    def test_snapshot_hides_own_key(self):
        model = replace(init_model(Flags()), status=WaitingForAId(KEY_A))
        self.assertEqual(snapshot(model)["status"], {"name": "WaitingForAId"})

    def test_phone_classification(self):
        self.assertEqual(init_model(Flags(window_width=400)).device, "phone")


if __name__ == "__main__":
    unittest.main()
