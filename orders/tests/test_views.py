"""Integration tests for the order endpoints."""

from __future__ import annotations

from datetime import date, timedelta
from unittest import mock

from django.test import TestCase
from django.urls import reverse

from orders import services
from orders.exceptions import InfrastructureError
from orders.models import Order

from .factories import make_member, make_room


class OrderEndpointTests(TestCase):
    def setUp(self) -> None:
        self.member = make_member()
        self.room = make_room(name="Garden Suite", price="3200.00")
        self.client.force_login(self.member)

    def _reserve(self, start: str, end: str, room=None):
        return self.client.post(
            reverse("orders:reserve_room"),
            {"room": (room or self.room).pk, "start_date": start, "end_date": end},
        )

    def test_room_list_is_public_and_hides_inactive_rooms(self) -> None:
        make_room(name="Closed Wing", is_active=False)
        self.client.logout()

        response = self.client.get(reverse("orders:room_list"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([room["name"] for room in response.json()["rooms"]], ["Garden Suite"])

    def test_room_detail_for_inactive_room_is_404(self) -> None:
        closed = make_room(is_active=False)

        response = self.client.get(reverse("orders:room_detail", args=[closed.pk]))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "not_found")

    def test_reserve_creates_order(self) -> None:
        response = self._reserve("2024-06-01", "2024-06-03")

        self.assertEqual(response.status_code, 201, response.json())
        body = response.json()["order"]
        self.assertEqual(body["total_amount"], "6400.00")
        self.assertEqual(body["nights"], 2)
        self.assertFalse(body["is_paid"])
        self.assertEqual(Order.objects.get().member, self.member)

    def test_reserve_conflict_returns_409(self) -> None:
        self._reserve("2024-06-01", "2024-06-05")

        response = self._reserve("2024-06-03", "2024-06-04")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "conflict")
        self.assertEqual(Order.objects.count(), 1)

    def test_reserve_rejects_inverted_dates(self) -> None:
        response = self._reserve("2024-06-05", "2024-06-01")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "validation_error")

    def test_reserve_rejects_malformed_dates(self) -> None:
        response = self._reserve("06/01/2024", "2024-06-03")

        self.assertEqual(response.status_code, 400)
        self.assertIn("start_date", response.json()["fields"])

    def test_reserve_requires_login(self) -> None:
        self.client.logout()

        response = self._reserve("2024-06-01", "2024-06-03")

        self.assertEqual(response.status_code, 302)
        self.assertFalse(Order.objects.exists())

    def test_booked_dates_wire_format(self) -> None:
        self._reserve("2024-06-01", "2024-06-03")

        response = self.client.get(
            reverse("orders:booked_dates", args=[self.room.pk]),
            {"start_date": "2024-05-01", "end_date": "2024-07-31"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"success": True, "bookings": ["2024-06-01", "2024-06-02", "2024-06-03"]},
        )

    def test_booked_dates_defaults_to_upcoming_horizon(self) -> None:
        start = date.today() + timedelta(days=2)
        self._reserve(start.isoformat(), (start + timedelta(days=1)).isoformat())

        response = self.client.get(reverse("orders:booked_dates", args=[self.room.pk]))

        self.assertEqual(response.json()["bookings"], [start.isoformat(), (start + timedelta(days=1)).isoformat()])

    def test_availability_endpoint(self) -> None:
        self._reserve("2024-06-01", "2024-06-03")
        url = reverse("orders:room_availability", args=[self.room.pk])

        busy = self.client.get(url, {"start_date": "2024-06-02", "end_date": "2024-06-04"})
        free = self.client.get(url, {"start_date": "2024-06-03", "end_date": "2024-06-04"})
        missing = self.client.get(url, {"start_date": "2024-06-03"})

        self.assertFalse(busy.json()["available"])
        self.assertTrue(free.json()["available"])
        self.assertEqual(missing.status_code, 400)

    def test_order_list_only_shows_own_orders(self) -> None:
        self._reserve("2024-06-01", "2024-06-03")
        services.reserve_room(self.room.pk, make_member().pk, date(2024, 7, 1), date(2024, 7, 2))

        response = self.client.get(reverse("orders:order_list"))

        self.assertEqual(len(response.json()["orders"]), 1)

    def test_order_detail_of_other_member_is_403(self) -> None:
        order = services.reserve_room(self.room.pk, make_member().pk, date(2024, 7, 1), date(2024, 7, 2))

        response = self.client.get(reverse("orders:order_detail", args=[order.pk]))

        self.assertEqual(response.status_code, 403)

    def test_order_detail_includes_room_price(self) -> None:
        order_id = self._reserve("2024-06-01", "2024-06-03").json()["order"]["id"]

        response = self.client.get(reverse("orders:order_detail", args=[order_id]))

        self.assertEqual(response.json()["order"]["price"], "3200.00")
        self.assertEqual(response.json()["order"]["room_name"], "Garden Suite")

    def test_cancel_twice(self) -> None:
        order_id = self._reserve("2024-06-01", "2024-06-03").json()["order"]["id"]
        url = reverse("orders:cancel_order", args=[order_id])

        first = self.client.post(url)
        second = self.client.post(url)

        self.assertEqual(first.status_code, 200)
        self.assertTrue(first.json()["order"]["is_cancelled"])
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json()["error"], "already_cancelled")

    def test_staff_can_cancel_member_order(self) -> None:
        order_id = self._reserve("2024-06-01", "2024-06-03").json()["order"]["id"]
        self.client.force_login(make_member(is_staff=True))

        response = self.client.post(reverse("orders:cancel_order", args=[order_id]))

        self.assertEqual(response.status_code, 200)

    def test_cart_remove_and_checkout_flow(self) -> None:
        keep = self._reserve("2024-06-01", "2024-06-03").json()["order"]["id"]
        drop = self._reserve("2024-06-05", "2024-06-06").json()["order"]["id"]

        cart = self.client.get(reverse("orders:cart")).json()
        self.assertEqual(cart["total"], "9600.00")

        removed = self.client.post(reverse("orders:remove_from_cart", args=[drop]))
        self.assertEqual(removed.status_code, 200)

        checkout = self.client.post(reverse("orders:checkout"))
        self.assertEqual(checkout.status_code, 200)
        self.assertEqual([order["id"] for order in checkout.json()["orders"]], [keep])
        self.assertTrue(all(order["is_paid"] for order in checkout.json()["orders"]))

        again = self.client.post(reverse("orders:checkout"))
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()["error"], "empty_cart")
        self.assertEqual(self.client.get(reverse("orders:cart")).json()["items"], [])

    def test_checkout_requires_post(self) -> None:
        response = self.client.get(reverse("orders:checkout"))

        self.assertEqual(response.status_code, 405)

    def test_infrastructure_failure_returns_503(self) -> None:
        with mock.patch("orders.views.services.list_active_rooms", side_effect=InfrastructureError()):
            response = self.client.get(reverse("orders:room_list"))

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["error"], "infrastructure_error")
