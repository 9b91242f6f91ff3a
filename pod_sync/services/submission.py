"""Paid Shopify order -> Printoteca order.

Design assets are generated by a third party after checkout and race the
orders/paid webhook, so the first send is delayed and an "asset not ready"
rejection is retried a bounded number of times on a fixed delay. Each
attempt is a ``SubmissionJob`` handed to the scheduler; the engine keeps no
state between attempts other than a short in-process claim per order.

Idempotency rests on the ``pod.supplier_order_id`` metafield, which is
re-read at the start of every attempt: a previous attempt may have created
the supplier order even though we never saw the response.
"""
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config import PodConfig
from ..errors import ConfigError, StorefrontError, SupplierError, TerminalSupplierError, TransientSupplierError
from ..models import extract_order_id
from ..utils.logger import info, warn, error
from .linkage import get_linked_supplier_id, set_linked_supplier_id
from .ports import Scheduler, StorefrontOrders, SupplierOrders
from .mapper import map_to_supplier_payload, partition_line_items
from .tags import PodTag, apply_pod_tag, surface_supplier_error


class SubmissionStatus(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    NO_ITEMS = "no_items"
    RETRY_SCHEDULED = "retry_scheduled"
    IN_FLIGHT = "in_flight"


@dataclass(frozen=True)
class SubmissionResult:
    status: SubmissionStatus
    supplier_order_id: Optional[str] = None
    attempt: int = 1


@dataclass(frozen=True)
class SubmissionJob:
    order: dict
    attempt: int = 1


def is_transient(message: str, signatures) -> bool:
    text = (message or "").lower()
    return any(sig.lower() in text for sig in signatures if sig)


class SubmissionEngine:
    def __init__(self, config: PodConfig, storefront: StorefrontOrders, supplier: SupplierOrders,
                 scheduler: Scheduler):
        self.config = config
        self.storefront = storefront
        self.supplier = supplier
        self.scheduler = scheduler
        self._claims: set[str] = set()
        self._claims_lock = threading.Lock()

    # ---- in-process claim ----

    def _claim(self, order_id) -> bool:
        with self._claims_lock:
            key = str(order_id)
            if key in self._claims:
                return False
            self._claims.add(key)
            return True

    def _release(self, order_id):
        with self._claims_lock:
            self._claims.discard(str(order_id))

    # ---- entry points ----

    def dispatch(self, order: dict):
        """Queue the first attempt after the initial delay and return immediately."""
        delay = self.config.initial_delay_seconds
        info(f"[submit] OID={order.get('id')} first attempt in {delay}s")
        self.scheduler.call_later(delay, self.run_job, SubmissionJob(order, 1))

    def run_job(self, job: SubmissionJob):
        oid = job.order.get("id")
        try:
            result = self.submit(job.order, job.attempt)
            info(f"[submit] OID={oid} attempt={job.attempt} -> {result.status.value}"
                 f"{f' PID={result.supplier_order_id}' if result.supplier_order_id else ''}")
        except TerminalSupplierError as e:
            error(f"[submit] OID={oid} gave up at attempt={job.attempt}: {e.message}")
        except Exception as e:
            error(f"[submit] OID={oid} attempt={job.attempt} crashed: {e}")
            surface_supplier_error(self.storefront, oid, str(e))

    def submit(self, order: dict, attempt: int = 1) -> SubmissionResult:
        oid = order.get("id")
        if not self._claim(oid):
            warn(f"[submit] OID={oid} attempt={attempt} skipped, another attempt is running")
            return SubmissionResult(SubmissionStatus.IN_FLIGHT, attempt=attempt)
        try:
            return self._submit(order, attempt)
        finally:
            self._release(oid)

    # ---- one attempt ----

    def _submit(self, order: dict, attempt: int) -> SubmissionResult:
        oid = order.get("id")

        try:
            existing = get_linked_supplier_id(self.storefront, oid)
        except StorefrontError as e:
            return self._handle_linkage_read_failure(order, attempt, e)
        if existing:
            info(f"[submit] OID={oid} already linked to PID={existing}")
            return SubmissionResult(SubmissionStatus.ALREADY_EXISTS, existing, attempt)

        valid, invalid = partition_line_items(order, self.config.allowed_skus)
        if invalid and attempt == 1:
            self._flag_unknown_skus(oid, invalid)
        if not valid:
            info(f"[submit] OID={oid} nothing to send to Printoteca")
            return SubmissionResult(SubmissionStatus.NO_ITEMS, attempt=attempt)

        payload = self._build_payload(order, valid)

        try:
            data = self.supplier.create(payload)
            supplier_id = extract_order_id(data)
        except SupplierError as e:
            return self._handle_failure(order, attempt, e)
        except ConfigError as e:
            return self._handle_failure(order, attempt, SupplierError(str(e)))

        try:
            set_linked_supplier_id(self.storefront, oid, supplier_id)
        except Exception as e:
            # external_id still links the two; reconciliation and cancel can recover it
            error(f"[submit] OID={oid} created PID={supplier_id} but linkage metafield write failed: {e}")
        info(f"[submit] OID={oid} created Printoteca order PID={supplier_id} on attempt={attempt}")
        return SubmissionResult(SubmissionStatus.CREATED, supplier_id, attempt)

    def _build_payload(self, order: dict, valid: list[dict]) -> dict:
        payload = map_to_supplier_payload(order, valid, design_prefix=self.config.design_property_prefix)
        if not payload.get("brandName") and self.config.brand_name:
            payload["brandName"] = self.config.brand_name
        shipping = payload.setdefault("shipping", {})
        if not shipping.get("shippingMethod"):
            shipping["shippingMethod"] = self.config.default_shipping_method or "regular"
        return payload

    def _flag_unknown_skus(self, oid, invalid: list[str]):
        warn(f"[submit] OID={oid} unknown SKUs: {', '.join(invalid)}")
        try:
            apply_pod_tag(self.storefront, oid, PodTag.UNKNOWN_SKU)
            self.storefront.append_note(
                oid, f"Printoteca: skipped line items with unknown SKU(s): {', '.join(invalid)}")
        except Exception as e:
            warn(f"[submit] OID={oid} could not record unknown SKUs: {e}")

    def classify(self, exc: SupplierError) -> SupplierError:
        if is_transient(exc.message, self.config.transient_error_signatures):
            return TransientSupplierError(exc.message, exc.status_code)
        return TerminalSupplierError(exc.message, exc.status_code)

    def _handle_failure(self, order: dict, attempt: int, exc: SupplierError) -> SubmissionResult:
        oid = order.get("id")
        message = exc.message
        error(f"[submit] OID={oid} attempt={attempt} failed: {message}")

        failure = self.classify(exc)
        if isinstance(failure, TransientSupplierError):
            if attempt < self.config.max_attempts:
                info(f"[submit] OID={oid} asset not ready")
                return self._schedule_retry(order, attempt)
            warn(f"[submit] OID={oid} out of attempts ({self.config.max_attempts})")

        surface_supplier_error(self.storefront, oid, message)
        raise TerminalSupplierError(message, exc.status_code) from exc

    def _handle_linkage_read_failure(self, order: dict, attempt: int, exc: StorefrontError) -> SubmissionResult:
        # without the linkage read we cannot tell whether the order was already sent
        oid = order.get("id")
        message = f"could not read Shopify linkage metafield: {exc}"
        error(f"[submit] OID={oid} attempt={attempt} {message}")
        if attempt < self.config.max_attempts:
            return self._schedule_retry(order, attempt)
        warn(f"[submit] OID={oid} out of attempts ({self.config.max_attempts})")
        surface_supplier_error(self.storefront, oid, message)
        raise TerminalSupplierError(message, exc.status_code) from exc

    def _schedule_retry(self, order: dict, attempt: int) -> SubmissionResult:
        delay = self.config.retry_delay_seconds
        info(f"[submit] OID={order.get('id')} retry {attempt + 1} in {delay}s")
        self.scheduler.call_later(delay, self.run_job, SubmissionJob(order, attempt + 1))
        return SubmissionResult(SubmissionStatus.RETRY_SCHEDULED, attempt=attempt)
