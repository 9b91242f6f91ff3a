from dataclasses import dataclass

from ..config import PodConfig
from .cancellation import CancellationEngine
from .ports import Scheduler, StorefrontOrders, SupplierOrders
from .reconciler import StatusReconciler
from .scheduler import ThreadingScheduler
from .submission import SubmissionEngine


@dataclass
class Services:
    config: PodConfig
    submission: SubmissionEngine
    cancellation: CancellationEngine
    reconciler: StatusReconciler
    scheduler: Scheduler
    storefront: StorefrontOrders
    supplier: SupplierOrders


def build_services(config: PodConfig, storefront=None, supplier=None, scheduler=None, clock=None) -> Services:
    if storefront is None:
        from ..clients.shopify import ShopifyOrders
        storefront = ShopifyOrders(config.shop_domain, config.shop_token, config.api_version, config.http_timeout)
    if supplier is None:
        from ..clients.printoteca import PrintotecaClient
        supplier = PrintotecaClient(config.supplier_base_url, config.supplier_app_id,
                                    config.supplier_secret_key, config.http_timeout)
    if scheduler is None:
        scheduler = ThreadingScheduler()

    extra: dict = {"clock": clock} if clock is not None else {}
    return Services(
        config=config,
        submission=SubmissionEngine(config, storefront, supplier, scheduler),
        cancellation=CancellationEngine(config, storefront, supplier, **extra),
        reconciler=StatusReconciler(config, storefront, supplier, **extra),
        scheduler=scheduler,
        storefront=storefront,
        supplier=supplier,
    )
