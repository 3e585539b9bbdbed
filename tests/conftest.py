"""
Pytest Configuration and Centralized Fixtures.

Provides a FastAPI fake of the marketplace backend, mounted in-process with
httpx.ASGITransport, plus client and session fixtures:
- BackendState: the fake's in-memory data and a log of every request
- api_client: ApiClient wired to the fake with an in-memory token store
- buyer / seller / admin sessions: AuthSession already logged in
- Local files for upload tests
"""

import itertools
import logging
import os
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
import structlog
from fastapi import FastAPI, File, Form, Header, Request, UploadFile
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

# Settings are read at import time; keep tests independent of a local .env
os.environ.setdefault("VIBING_API_URL", "http://testserver/api")
os.environ.setdefault("VIBING_TRACING_ENABLED", "false")
os.environ.setdefault("VIBING_METRICS_ENABLED", "false")
os.environ.setdefault("VIBING_CHAT_POLL_INTERVAL", "0.05")
os.environ.setdefault("VIBING_CHAT_RECONCILE_DELAY", "0")

from vibing.api.client import ApiClient
from vibing.services.auth_session import AuthSession
from vibing.services.events import AuthEventEmitter
from vibing.services.token_store import MemoryTokenStore

API_ROOT = "http://testserver/api"
PASSWORD = "secret"
VERIFICATION_CODE = "123456"

# ============================================================================
# Fake Backend
# ============================================================================


class FakeApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message


@dataclass
class BackendState:
    """Everything the fake backend knows, plus what it was asked."""

    users: dict[str, dict[str, Any]] = field(default_factory=dict)
    passwords: dict[str, str] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)
    products: dict[str, dict[str, Any]] = field(default_factory=dict)
    purchases: list[dict[str, Any]] = field(default_factory=list)
    conversations: dict[str, dict[str, Any]] = field(default_factory=dict)
    messages: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    reviews: list[dict[str, Any]] = field(default_factory=list)
    disputes: list[dict[str, Any]] = field(default_factory=list)

    payment_verified: bool = True
    can_review: bool = True
    failures: dict[str, int] = field(default_factory=dict)

    requests: list[str] = field(default_factory=list)
    product_queries: list[dict[str, str]] = field(default_factory=list)
    verify_calls: list[dict[str, Any]] = field(default_factory=list)
    dispute_requests: list[tuple[str, str]] = field(default_factory=list)
    uploads: list[dict[str, Any]] = field(default_factory=list)
    resolutions: list[dict[str, Any]] = field(default_factory=list)

    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def count(self, method: str, path: str) -> int:
        return self.requests.count(f"{method} {path}")

    def add_user(self, email: str, role: str, name: str) -> dict[str, Any]:
        user = {
            "id": f"user-{role}",
            "email": email,
            "name": name,
            "role": role,
            "phoneVerified": False,
            "isActive": True,
            "createdAt": "2025-01-01T00:00:00Z",
        }
        self.users[email] = user
        self.passwords[email] = PASSWORD
        return user

    def issue_token(self, email: str) -> str:
        token = self.next_id("token")
        self.tokens[token] = email
        return token


def seed_state() -> BackendState:
    state = BackendState()
    state.add_user("buyer@example.com", "buyer", "Bea Buyer")
    state.add_user("seller@example.com", "seller", "Sol Seller")
    state.add_user("admin@example.com", "admin", "Ada Admin")

    for product in (
        {"id": "prod-cli", "title": "Fast CLI", "price": 10.0, "category": "cli-tools"},
        {"id": "prod-lib", "title": "Tiny Lib", "price": 25.5, "category": "libraries"},
        {"id": "prod-free", "title": "Free Icons", "price": 0.0, "category": "design"},
    ):
        state.products[product["id"]] = {
            **product,
            "description": f"{product['title']} description",
            "author": "Sol Seller",
            "sellerId": "user-seller",
            "tags": ["demo"],
            "status": "active",
            "rating": 4.5,
            "reviews": 2,
        }

    state.purchases = [
        {
            "id": "pur-old",
            "purchaseDate": "2025-01-01T10:00:00Z",
            "price": 25.5,
            "status": "confirmed",
            "orderId": "order-old",
            "paymentMethod": "tosspay",
            "canRequestDispute": False,
            "product": {"id": "prod-lib", "title": "Tiny Lib", "author": "Sol Seller"},
        },
        {
            "id": "pur-new",
            "purchaseDate": "2025-03-01T10:00:00Z",
            "price": 10.0,
            "status": "completed",
            "orderId": "order-new",
            "paymentMethod": "tosspay",
            "canRequestDispute": True,
            "daysUntilAutoConfirm": 5,
            "product": {"id": "prod-cli", "title": "Fast CLI", "author": "Sol Seller"},
        },
    ]

    state.disputes = [
        {
            "id": "pur-disputed",
            "orderId": "order-d",
            "price": 10.0,
            "status": "dispute_requested",
            "disputeReason": "The archive is empty and unusable",
            "user": {"id": "user-buyer", "email": "buyer@example.com", "name": "Bea Buyer"},
            "product": {"id": "prod-cli", "title": "Fast CLI", "author": "Sol Seller"},
        }
    ]
    return state


def _paginate(items: list[Any], page: int = 1, limit: int = 10) -> dict[str, int]:
    total_pages = (len(items) + limit - 1) // limit if items else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": len(items),
        "itemsPerPage": limit,
    }


def create_fake_backend(state: BackendState) -> FastAPI:
    app = FastAPI()

    @app.exception_handler(FakeApiError)
    async def fake_api_error_handler(request: Request, exc: FakeApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.code, "message": exc.message}},
        )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        key = f"{request.method} {request.url.path.removeprefix('/api')}"
        state.requests.append(key)
        if state.failures.get(key, 0) > 0:
            state.failures[key] -= 1
            return JSONResponse(
                status_code=500,
                content={"error": {"code": "INTERNAL", "message": "Internal server error"}},
            )
        return await call_next(request)

    def current_user(authorization: str | None, role: str | None = None) -> dict[str, Any]:
        token = (authorization or "").removeprefix("Bearer ").strip()
        email = state.tokens.get(token)
        if email is None:
            raise FakeApiError(401, "UNAUTHORIZED", "Invalid or expired token")
        user = state.users[email]
        if role is not None and user["role"] != role:
            raise FakeApiError(403, "FORBIDDEN", "Insufficient permissions")
        return user

    def auth_response(email: str) -> dict[str, Any]:
        token = state.issue_token(email)
        return {
            "user": state.users[email],
            "token": token,
            "refreshToken": f"refresh-{token}",
        }

    # ------------------------------------------------------------------ auth

    @app.post("/api/auth/login")
    async def login(body: dict[str, Any]) -> dict[str, Any]:
        email = body.get("email", "")
        if state.passwords.get(email) != body.get("password"):
            raise FakeApiError(401, "INVALID_CREDENTIALS", "Invalid email or password")
        return auth_response(email)

    @app.post("/api/auth/signup", status_code=201)
    async def signup(body: dict[str, Any]) -> dict[str, Any]:
        email = body["email"]
        if email in state.users:
            raise FakeApiError(409, "USER_EXISTS", "User with this email already exists")
        user = state.add_user(email, body.get("role", "buyer"), body["name"])
        user["id"] = state.next_id("user")
        state.passwords[email] = body["password"]
        return auth_response(email)

    @app.post("/api/auth/logout")
    async def logout(authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization)
        state.tokens.pop((authorization or "").removeprefix("Bearer "), None)
        return {"message": "Logged out successfully"}

    @app.post("/api/auth/refresh")
    async def refresh(body: dict[str, Any]) -> dict[str, Any]:
        old = str(body.get("refreshToken", "")).removeprefix("refresh-")
        email = state.tokens.get(old)
        if email is None:
            raise FakeApiError(401, "INVALID_REFRESH_TOKEN", "Invalid refresh token")
        return {"token": state.issue_token(email)}

    @app.get("/api/auth/me")
    async def me(authorization: str | None = Header(None)) -> dict[str, Any]:
        return {"user": current_user(authorization)}

    @app.put("/api/auth/profile")
    async def profile(
        body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        user = current_user(authorization)
        user.update({k: v for k, v in body.items() if k in {"name", "phone", "avatar"}})
        return {"user": user}

    @app.post("/api/auth/send-verification-code")
    async def send_code(body: dict[str, Any]) -> dict[str, Any]:
        return {"message": "Verification code sent", "code": VERIFICATION_CODE}

    @app.post("/api/auth/verify-phone")
    async def verify_phone(body: dict[str, Any]) -> dict[str, Any]:
        if body.get("code") != VERIFICATION_CODE:
            raise FakeApiError(400, "INVALID_CODE", "Invalid verification code")
        return {"message": "Phone verified"}

    # -------------------------------------------------------------- products

    @app.get("/api/products")
    async def list_products(request: Request) -> dict[str, Any]:
        params = dict(request.query_params)
        state.product_queries.append(params)
        products = list(state.products.values())
        if "category" in params:
            products = [p for p in products if p["category"] == params["category"]]
        page, limit = int(params.get("page", 1)), int(params.get("limit", 12))
        window = products[(page - 1) * limit : page * limit]
        return {"products": window, "pagination": _paginate(products, page, limit)}

    @app.get("/api/products/categories")
    async def categories() -> dict[str, Any]:
        counts: dict[str, int] = {}
        for product in state.products.values():
            counts[product["category"]] = counts.get(product["category"], 0) + 1
        return {"categories": [{"id": k, "name": k, "count": v} for k, v in counts.items()]}

    @app.get("/api/products/{product_id}")
    async def get_product(product_id: str) -> dict[str, Any]:
        if product_id not in state.products:
            raise FakeApiError(404, "NOT_FOUND", "Product not found")
        return state.products[product_id]

    @app.post("/api/products", status_code=201)
    async def create_product(
        body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        user = current_user(authorization)
        product = {
            **body,
            "id": state.next_id("prod"),
            "sellerId": user["id"],
            "author": user["name"],
            "status": "pending",
        }
        state.products[product["id"]] = product
        return {"product": product}

    @app.put("/api/products/{product_id}")
    async def update_product(
        product_id: str, body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        state.products[product_id].update(body)
        return {"product": state.products[product_id]}

    @app.delete("/api/products/{product_id}")
    async def delete_product(
        product_id: str, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        state.products.pop(product_id, None)
        return {"message": "Product deleted"}

    # ------------------------------------------------------------- purchases

    @app.get("/api/purchase/history")
    async def history(
        page: int = 1, limit: int = 10, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        return {"purchases": state.purchases, "pagination": _paginate(state.purchases, page, limit)}

    @app.get("/api/purchase/stats")
    async def stats(authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization)
        return {
            "stats": {
                "totalPurchases": len(state.purchases),
                "completedPurchases": len(state.purchases),
                "totalSpent": sum(p["price"] for p in state.purchases),
            }
        }

    @app.get("/api/purchase/check/{product_id}")
    async def check(product_id: str, authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization)
        for purchase in state.purchases:
            if purchase["product"]["id"] == product_id:
                return {"purchased": True, "purchaseId": purchase["id"]}
        return {"purchased": False}

    @app.get("/api/purchase/{purchase_id}/download")
    async def download(
        purchase_id: str, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        return {
            "downloadUrl": f"https://files.example.com/{purchase_id}.zip",
            "expiresAt": "2025-03-01T11:00:00Z",
        }

    @app.post("/api/purchase/{purchase_id}/generate-license")
    async def generate_license(
        purchase_id: str, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        return {"licenseKey": f"LIC-{purchase_id.upper()}", "message": "License generated"}

    @app.post("/api/purchase/{purchase_id}/dispute")
    async def dispute(
        purchase_id: str, body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        state.dispute_requests.append((purchase_id, body["reason"]))
        for purchase in state.purchases:
            if purchase["id"] == purchase_id:
                purchase.update(
                    status="dispute_requested",
                    canRequestDispute=False,
                    disputeReason=body["reason"],
                )
        return {"message": "Dispute requested"}

    @app.post("/api/payments/verify/{payment_id}")
    async def verify_payment(
        payment_id: str, request: Request, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        params = dict(request.query_params)
        state.verify_calls.append({"paymentId": payment_id, **params})
        amount = int(params.get("amount", 0))
        if not state.payment_verified:
            return {"verified": False, "paymentId": payment_id, "amount": amount, "status": "FAILED"}

        purchase = {
            "id": state.next_id("pur"),
            "orderId": f"order-{payment_id}",
            "status": "completed",
            "price": amount,
            "purchaseDate": "2025-04-01T10:00:00Z",
            "canRequestDispute": True,
            "product": {"id": "prod-cli", "title": "Fast CLI"},
        }
        state.purchases.append(purchase)
        return {
            "verified": True,
            "paymentId": payment_id,
            "amount": amount,
            "status": "PAID",
            "purchase": {
                "id": purchase["id"],
                "orderId": purchase["orderId"],
                "status": "completed",
                "product": purchase["product"],
            },
        }

    # ------------------------------------------------------------------ chat

    @app.get("/api/chat/conversations")
    async def conversations(authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization)
        items = list(state.conversations.values())
        return {"conversations": items, "pagination": _paginate(items, 1, 20)}

    @app.post("/api/chat/conversations", status_code=201)
    async def create_conversation(
        body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        user = current_user(authorization)
        conv_id = state.next_id("conv")
        state.conversations[conv_id] = {
            "id": conv_id,
            "otherUserId": body["sellerId"],
            "otherUserName": body.get("sellerName", ""),
            "productId": body.get("productId"),
            "productName": body.get("productName"),
            "unreadCount": 0,
        }
        state.messages[conv_id] = []
        return {
            "conversation": {
                "id": conv_id,
                "buyerId": user["id"],
                "sellerId": body["sellerId"],
                "productId": body.get("productId"),
                "productName": body.get("productName"),
            }
        }

    @app.get("/api/chat/conversations/{conv_id}/messages")
    async def messages(conv_id: str, authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization)
        items = state.messages.get(conv_id, [])
        return {"messages": items, "pagination": _paginate(items, 1, 50)}

    def _store_message(user: dict[str, Any], conv_id: str, **fields: Any) -> dict[str, Any]:
        message = {
            "id": state.next_id("msg"),
            "senderId": user["id"],
            "senderName": user["name"],
            "senderRole": user["role"],
            "timestamp": "2025-04-01T10:00:00Z",
            "isRead": False,
            **fields,
        }
        state.messages.setdefault(conv_id, []).append(message)
        state.conversations[conv_id]["lastMessage"] = {
            "text": message.get("text") or "[image]",
            "timestamp": message["timestamp"],
            "senderId": user["id"],
        }
        return message

    @app.post("/api/chat/conversations/{conv_id}/messages", status_code=201)
    async def send_message(
        conv_id: str, body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        user = current_user(authorization)
        return {"message": _store_message(user, conv_id, text=body["text"], messageType="text")}

    @app.post("/api/chat/conversations/{conv_id}/images", status_code=201)
    async def send_image(
        conv_id: str, body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        user = current_user(authorization)
        return {
            "message": _store_message(
                user, conv_id, text="", imageUrl=body["imageUrl"], messageType="image"
            )
        }

    @app.put("/api/chat/conversations/{conv_id}/read")
    async def mark_read(conv_id: str, authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization)
        state.conversations[conv_id]["unreadCount"] = 0
        return {"message": "Marked as read"}

    # --------------------------------------------------------------- reviews

    @app.get("/api/reviews/product/{product_id}")
    async def product_reviews(product_id: str, page: int = 1, limit: int = 10) -> dict[str, Any]:
        items = [r for r in state.reviews if r["productId"] == product_id]
        window = items[(page - 1) * limit : page * limit]
        return {
            "reviews": window,
            "total": len(items),
            "page": page,
            "limit": limit,
            "hasMore": page * limit < len(items),
        }

    @app.get("/api/reviews/product/{product_id}/rating-distribution")
    async def rating_distribution(product_id: str) -> dict[str, Any]:
        distribution: dict[str, int] = {}
        for review in state.reviews:
            if review["productId"] == product_id:
                key = str(review["rating"])
                distribution[key] = distribution.get(key, 0) + 1
        return {"distribution": distribution}

    @app.get("/api/reviews/user/product/{product_id}")
    async def my_review(product_id: str, authorization: str | None = Header(None)) -> Any:
        user = current_user(authorization)
        for review in state.reviews:
            if review["productId"] == product_id and review["userId"] == user["id"]:
                return {"review": review}
        raise FakeApiError(404, "NOT_FOUND", "Review not found")

    @app.get("/api/reviews/can-review/{product_id}")
    async def can_review(product_id: str, authorization: str | None = Header(None)) -> Any:
        current_user(authorization)
        return {"canReview": state.can_review}

    @app.post("/api/reviews", status_code=201)
    async def create_review(
        body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        user = current_user(authorization)
        review = {
            "id": state.next_id("rev"),
            "productId": body["productId"],
            "userId": user["id"],
            "rating": body["rating"],
            "comment": body["comment"],
            "createdAt": "2025-04-01T10:00:00Z",
        }
        state.reviews.append(review)
        return {"review": review}

    @app.put("/api/reviews/{review_id}")
    async def update_review(
        review_id: str, body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        for review in state.reviews:
            if review["id"] == review_id:
                review.update(body)
                return {"review": review}
        raise FakeApiError(404, "NOT_FOUND", "Review not found")

    @app.delete("/api/reviews/{review_id}")
    async def delete_review(
        review_id: str, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        state.reviews = [r for r in state.reviews if r["id"] != review_id]
        return {"message": "Review deleted"}

    # --------------------------------------------------------------- uploads

    async def _store_image(kind: str, image: UploadFile) -> dict[str, Any]:
        content = await image.read()
        state.uploads.append({"kind": kind, "filename": image.filename, "size": len(content)})
        return {"imageUrl": f"/uploads/{kind}/{image.filename}", "message": "Uploaded"}

    @app.post("/api/upload/image")
    async def upload_image(
        image: UploadFile = File(...), authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        return await _store_image("images", image)

    @app.post("/api/upload/chat-image")
    async def upload_chat_image(
        image: UploadFile = File(...), authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization)
        return await _store_image("chat", image)

    @app.post("/api/upload/product-files")
    async def upload_product_file(
        file: UploadFile = File(...),
        productId: str = Form(...),  # noqa: N803
        authorization: str | None = Header(None),
    ) -> dict[str, Any]:
        current_user(authorization)
        content = await file.read()
        state.uploads.append(
            {"kind": "files", "filename": file.filename, "size": len(content), "productId": productId}
        )
        return {
            "file": {
                "filename": file.filename,
                "url": f"/uploads/files/{productId}/{file.filename}",
                "size": len(content),
            },
            "message": "File uploaded",
        }

    # ---------------------------------------------------------------- seller

    @app.get("/api/seller/dashboard")
    async def seller_dashboard(authorization: str | None = Header(None)) -> dict[str, Any]:
        user = current_user(authorization, role="seller")
        mine = [p for p in state.products.values() if p.get("sellerId") == user["id"]]
        return {
            "stats": {
                "totalRevenue": 1234.5,
                "totalSales": 12,
                "totalProducts": len(mine),
                "avgRating": 4.5,
            },
            "products": [
                {"id": p["id"], "title": p["title"], "price": p["price"], "status": p["status"]}
                for p in mine
            ],
        }

    @app.get("/api/seller/products")
    async def seller_products(
        page: int = 1,
        limit: int = 10,
        status: str | None = None,
        authorization: str | None = Header(None),
    ) -> dict[str, Any]:
        user = current_user(authorization, role="seller")
        mine = [p for p in state.products.values() if p.get("sellerId") == user["id"]]
        if status:
            mine = [p for p in mine if p["status"] == status]
        return {"products": mine, "pagination": _paginate(mine, page, limit)}

    @app.get("/api/seller/sales")
    async def seller_sales(
        page: int = 1, limit: int = 10, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization, role="seller")
        sales = [
            {
                "id": p["id"],
                "orderId": p["orderId"],
                "price": p["price"],
                "product": p["product"],
            }
            for p in state.purchases
        ]
        return {"sales": sales, "pagination": _paginate(sales, page, limit)}

    # ----------------------------------------------------------------- admin

    @app.get("/api/admin/stats")
    async def admin_stats(authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization, role="admin")
        return {
            "stats": {
                "totalUsers": len(state.users),
                "totalProducts": len(state.products),
                "totalSales": len(state.purchases),
                "totalRevenue": sum(p["price"] for p in state.purchases),
                "pendingProducts": sum(
                    1 for p in state.products.values() if p["status"] == "pending"
                ),
            }
        }

    @app.get("/api/admin/users")
    async def admin_users(authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization, role="admin")
        return {"users": list(state.users.values())}

    @app.put("/api/admin/users/{user_id}/role")
    async def admin_role(
        user_id: str, body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization, role="admin")
        for user in state.users.values():
            if user["id"] == user_id:
                user["role"] = body["role"]
                return {"user": user}
        raise FakeApiError(404, "NOT_FOUND", "User not found")

    @app.delete("/api/admin/users/{user_id}")
    async def admin_delete_user(
        user_id: str, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization, role="admin")
        state.users = {k: u for k, u in state.users.items() if u["id"] != user_id}
        return {"message": "User deleted"}

    @app.get("/api/admin/products")
    async def admin_products(authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization, role="admin")
        return {"products": list(state.products.values())}

    @app.put("/api/admin/products/{product_id}/status")
    async def admin_product_status(
        product_id: str, body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization, role="admin")
        state.products[product_id]["status"] = body["status"]
        return {"product": state.products[product_id]}

    @app.delete("/api/admin/products/{product_id}")
    async def admin_delete_product(
        product_id: str, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization, role="admin")
        state.products.pop(product_id, None)
        return {"message": "Product deleted"}

    @app.get("/api/admin/disputes")
    async def admin_disputes(authorization: str | None = Header(None)) -> dict[str, Any]:
        current_user(authorization, role="admin")
        return {"disputes": state.disputes}

    @app.put("/api/admin/disputes/{dispute_id}/process")
    async def admin_process_dispute(
        dispute_id: str, authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization, role="admin")
        for dispute in state.disputes:
            if dispute["id"] == dispute_id:
                dispute["status"] = "dispute_processing"
        return {"message": "Dispute is being processed"}

    @app.put("/api/admin/disputes/{dispute_id}/resolve")
    async def admin_resolve_dispute(
        dispute_id: str, body: dict[str, Any], authorization: str | None = Header(None)
    ) -> dict[str, Any]:
        current_user(authorization, role="admin")
        state.resolutions.append({"id": dispute_id, **body})
        state.disputes = [d for d in state.disputes if d["id"] != dispute_id]
        return {"message": "Dispute resolved"}

    return app


# ============================================================================
# Backend and Client Fixtures
# ============================================================================


@pytest.fixture
def backend() -> BackendState:
    """Fresh fake-backend state for each test."""
    return seed_state()


@pytest.fixture
def backend_app(backend: BackendState) -> FastAPI:
    return create_fake_backend(backend)


@pytest.fixture
def token_store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def events() -> AuthEventEmitter:
    """Isolated session-expiry channel (the global one is shared)."""
    return AuthEventEmitter()


@pytest.fixture
async def api_client(
    backend_app: FastAPI, token_store: MemoryTokenStore, events: AuthEventEmitter
) -> AsyncGenerator[ApiClient, None]:
    """ApiClient talking to the fake backend in-process."""
    http_client = AsyncClient(transport=ASGITransport(app=backend_app))
    client = ApiClient(token_store, base_url=API_ROOT, http_client=http_client, events=events)
    yield client
    await client.aclose()


async def _logged_in(client: ApiClient, email: str) -> AuthSession:
    session = AuthSession(client)
    await session.initialize()
    await session.login(email, PASSWORD)
    return session


@pytest.fixture
async def buyer_session(api_client: ApiClient) -> AuthSession:
    return await _logged_in(api_client, "buyer@example.com")


@pytest.fixture
async def seller_session(api_client: ApiClient) -> AuthSession:
    return await _logged_in(api_client, "seller@example.com")


@pytest.fixture
async def admin_session(api_client: ApiClient) -> AuthSession:
    return await _logged_in(api_client, "admin@example.com")


# ============================================================================
# Local File Fixtures
# ============================================================================


@pytest.fixture
def cover_image(tmp_path: Path) -> Path:
    path = tmp_path / "cover.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)
    return path


@pytest.fixture
def archive(tmp_path: Path) -> Path:
    path = tmp_path / "bundle.zip"
    path.write_bytes(b"PK\x03\x04" + b"\x00" * 64)
    return path


@pytest.fixture
def text_file(tmp_path: Path) -> Path:
    path = tmp_path / "notes.txt"
    path.write_text("not an image")
    return path


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_client_logging():
    """Detach handlers setup_logging() bound to a test's captured stderr."""
    with structlog.testing.capture_logs():
        yield
    client_logger = logging.getLogger("vibing")
    for handler in list(client_logger.handlers):
        client_logger.removeHandler(handler)
    client_logger.setLevel(logging.NOTSET)
    client_logger.propagate = True
