"""
URL routing for the ordering API.

Menu, tables and cart are open to anonymous sessions; orders and feedback
need a signed-in customer.
"""

from django.urls import path

from apps.web.ordering import views

app_name = "ordering"

urlpatterns = [
    # Customer session
    path("login", views.login, name="login"),
    path("logout", views.logout, name="logout"),
    path("register", views.register, name="register"),
    path("profile", views.profile, name="profile"),
    # Menu and tables
    path("menu", views.menu, name="menu"),
    path("tables/available", views.available_tables, name="tables_available"),
    path("tables/<str:table_no>", views.table_detail, name="table_detail"),
    path("tables/<str:table_no>/claim", views.claim_table, name="table_claim"),
    # Cart
    path("cart", views.cart, name="cart"),
    path("cart/items", views.cart_add, name="cart_add"),
    path("cart/items/<str:dish_id>", views.cart_item, name="cart_item"),
    # Orders
    path("orders", views.orders, name="orders"),
    path("orders/current", views.current_order, name="current_order"),
    path(
        "orders/current/items",
        views.current_order_add_items,
        name="current_order_add_items",
    ),
    path("orders/current/pay", views.current_order_pay, name="current_order_pay"),
    path("orders/<str:order_id>", views.order_detail, name="order_detail"),
    path(
        "orders/<str:order_id>/feedback",
        views.order_feedback,
        name="order_feedback",
    ),
    # Feedback
    path("feedback", views.feedback, name="feedback"),
]
