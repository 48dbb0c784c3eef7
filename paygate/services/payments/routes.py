"""Payment routes mounted under `/api/payments`."""

from fastapi import APIRouter, Depends, Request

from paygate.services.payments.service import PaymentController


router = APIRouter()


def get_controller(request: Request) -> PaymentController:
    return request.app.state.payment_controller


@router.post("/payment-intents")
async def create_payment_intent(request: Request, controller: PaymentController = Depends(get_controller)):
    """Create a payment intent with the provider (201 on success)."""

    return await controller.create_payment_intent(request)


@router.get("/payment-intents/{paymentIntentId}")
async def get_payment_intent(paymentIntentId: str, controller: PaymentController = Depends(get_controller)):
    """Relay the provider's current snapshot of one intent."""

    return await controller.get_payment_intent(paymentIntentId)


@router.post("/payment-intents/{paymentIntentId}/confirm")
async def confirm_payment(
    paymentIntentId: str,
    request: Request,
    controller: PaymentController = Depends(get_controller),
):
    return await controller.confirm_payment(paymentIntentId, request)


@router.post("/payment-intents/{paymentIntentId}/cancel")
async def cancel_payment(paymentIntentId: str, controller: PaymentController = Depends(get_controller)):
    return await controller.cancel_payment(paymentIntentId)


@router.post("/webhooks")
async def handle_webhook(request: Request, controller: PaymentController = Depends(get_controller)):
    """Receive provider notifications for signature check and logging."""

    return await controller.handle_webhook(request)
