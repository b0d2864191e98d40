"""
Order notifications.

EmailSender delivers emails through the transactional email HTTP API
(Brevo compatible). NotificationDispatcher decouples delivery from the
request: checkout enqueues and returns, a background worker sends. Delivery
failures are logged and never affect the order.
"""

import asyncio
import logging

import aiohttp

import config
from enums.runtime_environment import RuntimeEnvironment
from models.order import OrderWithItemsDTO
from utils.html_escape import safe_html

logger = logging.getLogger(__name__)


def format_money(amount: int) -> str:
    minor_units = config.CURRENCY.get_minor_units()
    return f"{config.CURRENCY.value} {amount // minor_units:,}.{amount % minor_units:02d}"


class EmailSender:

    def __init__(self,
                 api_url: str | None = None,
                 api_key: str | None = None,
                 timeout_seconds: int | None = None):
        self.api_url = api_url or config.EMAIL_API_URL
        self.api_key = api_key if api_key is not None else config.EMAIL_API_KEY
        self.timeout_seconds = timeout_seconds or config.EMAIL_TIMEOUT_SECONDS

    async def send_email(self, recipient: str, subject: str, html_content: str) -> None:
        if config.RUNTIME_ENVIRONMENT != RuntimeEnvironment.PROD or not self.api_key:
            # Development: log the email instead of sending it
            logger.info(f"Email (not sent, {config.RUNTIME_ENVIRONMENT.value} mode) to {recipient}: {subject}")
            logger.debug(html_content)
            return

        payload = {
            "sender": {"name": config.EMAIL_FROM_NAME, "email": config.EMAIL_FROM_ADDRESS},
            "to": [{"email": recipient}],
            "subject": subject,
            "htmlContent": html_content,
        }
        headers = {"api-key": self.api_key, "Content-Type": "application/json", "Accept": "application/json"}
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(self.api_url, json=payload, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise RuntimeError(f"Email API answered HTTP {response.status}: {body[:200]}")
        logger.info(f"Email sent to {recipient}: {subject}")

    async def send_order_confirmation(self, order: OrderWithItemsDTO, recipient: str) -> None:
        subject, html_content = NotificationService.format_order_confirmation(order)
        await self.send_email(recipient, subject, html_content)


class NotificationService:

    @staticmethod
    def format_order_confirmation(order: OrderWithItemsDTO) -> tuple[str, str]:
        """Subject and HTML body of the order confirmation email."""
        subject = f"Order {order.order_number} confirmed"
        rows = "".join(
            f"<tr><td>{safe_html(item.product_name)}</td>"
            f"<td>{item.quantity}</td>"
            f"<td>{format_money(item.unit_price)}</td>"
            f"<td>{format_money(item.total)}</td></tr>"
            for item in order.items
        )
        order_date = order.created_at.strftime("%Y-%m-%d") if order.created_at else ""
        discount_row = ""
        if order.discount:
            discount_row = (f"<p>Discount ({safe_html(order.coupon_code)}): "
                            f"-{format_money(order.discount)}</p>")
        html_content = (
            f"<h1>Thank you, {safe_html(order.shipping_full_name)}!</h1>"
            f"<p>Order <b>{safe_html(order.order_number)}</b> placed on {order_date}.</p>"
            f"<table><tr><th>Product</th><th>Qty</th><th>Price</th><th>Total</th></tr>{rows}</table>"
            f"<p>Subtotal: {format_money(order.subtotal)}</p>"
            f"<p>Shipping: {format_money(order.shipping_cost)}</p>"
            f"{discount_row}"
            f"<p><b>Total: {format_money(order.total)}</b></p>"
            f"<h2>Shipping address</h2>"
            f"<p>{safe_html(order.shipping_street)} {safe_html(order.shipping_number)}<br>"
            f"{safe_html(order.shipping_city)}, {safe_html(order.shipping_province)} "
            f"{safe_html(order.shipping_postal_code)}<br>{safe_html(order.shipping_country)}</p>"
        )
        return subject, html_content


class NotificationDispatcher:
    """
    In-process delivery buffer for outbound notifications.

    The queue is never used to coordinate orders; losing it on shutdown only
    loses emails that had not been sent yet.
    """

    def __init__(self, sender: EmailSender | None = None, maxsize: int | None = None):
        self.sender = sender or EmailSender()
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize or config.NOTIFICATION_QUEUE_SIZE)
        self._worker: asyncio.Task | None = None

    def enqueue_order_confirmation(self, order: OrderWithItemsDTO) -> bool:
        """Fire-and-forget. Returns False when nothing was queued."""
        if not order.shipping_email:
            logger.info(f"Order {order.order_number} has no email recipient, confirmation skipped")
            return False
        try:
            self.queue.put_nowait((order, order.shipping_email))
            return True
        except asyncio.QueueFull:
            logger.error(f"Notification queue full, confirmation for order {order.order_number} dropped")
            return False

    async def deliver(self, order: OrderWithItemsDTO, recipient: str) -> None:
        try:
            await self.sender.send_order_confirmation(order, recipient)
        except Exception as e:
            logger.error(f"Failed to send confirmation for order {order.order_number}: {type(e).__name__}: {e}")

    async def _run(self) -> None:
        while True:
            order, recipient = await self.queue.get()
            try:
                await self.deliver(order, recipient)
            finally:
                self.queue.task_done()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run())
            logger.info("Notification dispatcher started")

    async def stop(self, drain_timeout: float = 5.0) -> None:
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self.queue.join(), timeout=drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Notification dispatcher stopped with {self.queue.qsize()} pending notifications")
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Notification dispatcher stopped")
