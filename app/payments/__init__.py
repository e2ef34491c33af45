"""
Payments app for platform-first Stripe Connect payments.

This app handles:
- Payment split calculation (customer total, fees, wholesaler share)
- Platform PaymentIntents and the PaymentCalculation audit trail
- Wholesaler transfers triggered by payment_intent.succeeded
- Express account onboarding for wholesalers
- Webhook ingestion and background processing

Related apps:
    - accounts: Wholesaler and retailer users
    - orders: Orders whose payment status this app drives

Usage:
    from payments.fees import calculate_payment_split
    from payments.services import PaymentIntentService

    split = calculate_payment_split(order.subtotal_cents, order.delivery_cost_cents)
    result = PaymentIntentService.issue_payment_intent(
        split,
        order_id=order.id,
        wholesaler_id=order.wholesaler_id,
        customer_id=order.retailer_id,
    )
"""
