"""
WeCom callback handlers (aiohttp).

GET   URL verification, echoes the decrypted ``echostr``.
POST  encrypted message, verify, decrypt, dispatch to the conversation
      engine and answer with an encrypted passive reply.

Only transport authentication failures are answered with 403. Once a
message is authenticated the platform always receives ``success`` so a
processing error never triggers WeCom's retry storm.
"""
import time
import logging
from dataclasses import dataclass
from typing import Optional

from aiohttp import web
from defusedxml import DefusedXmlException, ElementTree

from ..conversation import ConversationEngine
from ..exceptions import EnvelopeDecryptError, TransportError
from .crypto import EncryptedReply, WeComCrypto

logger = logging.getLogger("mykeys.wecom")

ACK = "success"


@dataclass(frozen=True)
class InboundMessage:
    to_user: str
    from_user: str
    create_time: str
    msg_type: str
    content: Optional[str] = None
    event: Optional[str] = None
    event_key: Optional[str] = None

    @classmethod
    def from_xml(cls, text: str) -> "InboundMessage":
        fields = parse_xml(text)
        return cls(
            to_user=fields.get("ToUserName", ""),
            from_user=fields.get("FromUserName", ""),
            create_time=fields.get("CreateTime", ""),
            msg_type=fields.get("MsgType", ""),
            content=fields.get("Content"),
            event=fields.get("Event"),
            event_key=fields.get("EventKey"),
        )


def parse_xml(text: str) -> dict[str, str]:
    """Flatten a ``<xml>`` document into {tag: text}.

    Entity declarations are rejected; the outer body is unauthenticated.

    Raises:
        ElementTree.ParseError: If the document is malformed.
        defusedxml.DefusedXmlException: If it declares entities.
    """
    root = ElementTree.fromstring(text)
    return {child.tag: child.text or "" for child in root}


def _cdata(value: str) -> str:
    return "<![CDATA[" + value.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def build_reply_xml(
    to_user: str, from_user: str, content: str, create_time: Optional[int] = None,
) -> str:
    create_time = create_time or int(time.time())
    return (
        "<xml>"
        f"<ToUserName>{_cdata(to_user)}</ToUserName>"
        f"<FromUserName>{_cdata(from_user)}</FromUserName>"
        f"<CreateTime>{create_time}</CreateTime>"
        f"<MsgType>{_cdata('text')}</MsgType>"
        f"<Content>{_cdata(content)}</Content>"
        "</xml>"
    )


def build_envelope_xml(reply: EncryptedReply) -> str:
    return (
        "<xml>"
        f"<Encrypt>{_cdata(reply.encrypt)}</Encrypt>"
        f"<MsgSignature>{_cdata(reply.signature)}</MsgSignature>"
        f"<TimeStamp>{reply.timestamp}</TimeStamp>"
        f"<Nonce>{_cdata(reply.nonce)}</Nonce>"
        "</xml>"
    )


def _query_b64(value: str) -> str:
    # "+" in an unencoded query string arrives as a space
    return value.replace(" ", "+")


class WeComHandler:
    """Transport adapter between WeCom callbacks and the conversation engine."""

    def __init__(self, crypto: WeComCrypto, engine: ConversationEngine):
        self._crypto = crypto
        self._engine = engine

    def setup(self, app: web.Application, path: str = "/wecom/callback") -> None:
        app.router.add_get(path, self.verify_url)
        app.router.add_post(path, self.handle_message)

    async def verify_url(self, request: web.Request) -> web.Response:
        query = request.query
        echostr = _query_b64(query.get("echostr", ""))
        try:
            self._crypto.verify(
                query.get("msg_signature", ""),
                query.get("timestamp", ""),
                query.get("nonce", ""),
                echostr,
            )
            message = self._crypto.decrypt(echostr)
        except TransportError as err:
            logger.warning("URL verification rejected: %s", type(err).__name__)
            return web.Response(status=403, text="Forbidden")
        logger.info("WeCom callback URL verified")
        return web.Response(text=message)

    async def handle_message(self, request: web.Request) -> web.Response:
        query = request.query
        body = await request.text()
        try:
            try:
                encrypted = parse_xml(body).get("Encrypt")
            except (ElementTree.ParseError, DefusedXmlException) as err:
                raise EnvelopeDecryptError("malformed callback body") from err
            if not encrypted:
                raise EnvelopeDecryptError("callback body without Encrypt")
            plaintext = self._crypto.decrypt_request(
                query.get("msg_signature", ""),
                query.get("timestamp", ""),
                query.get("nonce", ""),
                encrypted,
            )
        except TransportError as err:
            logger.warning("Callback rejected: %s", type(err).__name__)
            return web.Response(status=403, text="Forbidden")

        try:
            message = InboundMessage.from_xml(plaintext)
            reply = await self.process(message)
            if not reply:
                return web.Response(text=ACK)
            reply_xml = build_reply_xml(message.from_user, message.to_user, reply)
            envelope = self._crypto.encrypt_reply(reply_xml)
            return web.Response(
                text=build_envelope_xml(envelope), content_type="application/xml"
            )
        except Exception:
            logger.exception("WeCom message handling failed")
            return web.Response(text=ACK)

    async def process(self, message: InboundMessage) -> Optional[str]:
        """Dispatch an authenticated message; None means no reply."""
        if message.msg_type == "text" and message.content:
            return await self._engine.handle(message.from_user, message.content)
        if message.msg_type == "event":
            return await self._engine.handle_event(
                message.from_user, message.event, message.event_key
            )
        logger.debug("Ignoring %s message from user=%s", message.msg_type, message.from_user)
        return None
