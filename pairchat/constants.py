"""Relay wire constants and session timing windows.

Relay Wire Protocol
===================

Every relay frame is a JSON object carried in one WebSocket text frame.

Control frames sent by the relay carry a ``type`` discriminator (T_*).
Payloads sent by the peer are forwarded verbatim and are recognised by a
``body`` key instead; the body is one of the P_* shapes below.
"""

# Maximum size of one relay text frame, in characters
MAX_FRAME_SIZE = 1024 * 64

# ============================================================================
# Frame Keys
# ============================================================================

K_TYPE = "type"  # Control frame discriminator (str), one of T_* below
K_TO = "to"  # Target ConnId of a routed frame (str)
K_BODY = "body"  # Routed payload, one of the P_* shapes below
K_CONN_ID = "connId"  # ConnId (str)
K_PEER_CONN_ID = "peerConnId"  # ConnId of the other end (str)
K_CHAT_ID = "chatId"  # Chat room id (str)
K_MESSAGE = "message"  # Error text (str) in T_ERROR; ciphertext (str) in P_MESSAGE

# ============================================================================
# Control Frame Types - Relay -> Client
# ============================================================================

T_CONNECTED = "connected"  # Relay assigned this socket its ConnId
# Fields: connId

T_WAITING = "waiting"  # Creator: a joiner is waiting in your chat
# Fields: peerConnId, chatId

T_A_ID = "a_id"  # Joiner: the creator's ConnId
# Fields: connId

T_ERROR = "error"  # Relay-reported error, informational
# Fields: message

T_ROOM_UNAVAILABLE = "room_unavailable"  # Join rejected, no such chat

# ============================================================================
# Control Frame Types - Client -> Relay
# ============================================================================

T_JOIN = "join"  # Joiner: announce yourself to the chat's creator
# Fields: chatId

# ============================================================================
# Routed Payloads (value of K_BODY)
# ============================================================================

P_TYPING = "TYPING"  # Literal string marker
P_MESSAGE = "message"  # {"message": ciphertext}
P_KEY = "key"  # {"key": PublicKeyRecord}

# ============================================================================
# Timing Windows (milliseconds)
# ============================================================================

TYPING_PING_INTERVAL_MS = 4000  # At most one outbound TYPING per window
SCROLL_SETTLE_MS = 50  # Scroll events closer together than this are coalesced
NEAR_BOTTOM_SLACK_PX = 100  # Distance from the bottom still counted as "at bottom"

# ============================================================================
# Host UI
# ============================================================================

ROOT_PATH = "/"
PHONE_MAX_WIDTH_PX = 768
MAX_MESSAGE_LENGTH = 190  # UTF-8 bytes; RSA-2048 OAEP-SHA256 plaintext limit
