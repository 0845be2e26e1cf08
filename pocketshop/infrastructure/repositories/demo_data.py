# Seed data for the in-memory repository (vendor dashboard development).

DEMO_VENDOR_ID = "vendor-demo"

DEMO_MENU_ITEMS = [
    {"id": "menu-1", "vendorId": DEMO_VENDOR_ID, "name": "Maggi", "price": 50, "status": "ACTIVE"},
    {"id": "menu-2", "vendorId": DEMO_VENDOR_ID, "name": "Chai", "price": 20, "status": "ACTIVE"},
    {"id": "menu-3", "vendorId": DEMO_VENDOR_ID, "name": "Dosa", "price": 60, "status": "ACTIVE"},
    {"id": "menu-4", "vendorId": DEMO_VENDOR_ID, "name": "Samosa", "price": 15, "status": "ACTIVE"},
    {"id": "menu-5", "vendorId": DEMO_VENDOR_ID, "name": "Idli", "price": 40, "status": "ACTIVE"},
]

DEMO_ORDERS = [
    {
        "id": "order-1",
        "vendorId": DEMO_VENDOR_ID,
        "total": 150,
        "status": "NEW",
        "version": 1,
        "customerName": "Aman Momin",
        "orderNumber": "231",
        "items": [
            {"itemId": "menu-1", "name": "Maggi", "qty": 2, "price": 50},
            {"itemId": "menu-2", "name": "Chai", "qty": 1, "price": 20},
            {"itemId": "menu-4", "name": "Samosa", "qty": 2, "price": 15},
        ],
        "paymentMethod": "GOOGLE_PAY",
        "paymentStatus": "PAID",
        "orderType": "DINE_IN",
        "createdAt": "2025-01-10T13:42:00Z",
        "updatedAt": "2025-01-10T13:42:00Z",
    },
    {
        "id": "order-2",
        "vendorId": DEMO_VENDOR_ID,
        "total": 80,
        "status": "NEW",
        "version": 1,
        "customerName": "Prathmesh",
        "orderNumber": "232",
        "items": [
            {"itemId": "menu-2", "name": "Chai", "qty": 1, "price": 20},
            {"itemId": "menu-3", "name": "Dosa", "qty": 1, "price": 60},
        ],
        "paymentMethod": "PAYTM",
        "paymentStatus": "PENDING",
        "orderType": "TAKEAWAY",
        "createdAt": "2025-01-10T13:45:00Z",
        "updatedAt": "2025-01-10T13:45:00Z",
    },
    {
        "id": "order-3",
        "vendorId": DEMO_VENDOR_ID,
        "total": 260,
        "status": "NEW",
        "version": 1,
        "customerName": "Pratik",
        "orderNumber": "233",
        "items": [
            {"itemId": "menu-1", "name": "Maggi", "qty": 2, "price": 50},
            {"itemId": "menu-3", "name": "Dosa", "qty": 2, "price": 60},
            {"itemId": "menu-5", "name": "Idli", "qty": 1, "price": 40},
        ],
        "paymentMethod": "CASH",
        "paymentStatus": "PAID",
        "orderType": "DINE_IN",
        "createdAt": "2025-01-10T13:43:00Z",
        "updatedAt": "2025-01-10T13:43:00Z",
    },
]
