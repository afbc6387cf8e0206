#!/usr/bin/env python3
"""Simple usage example of DesensitizeEngine.

This example demonstrates the simplest way to use fieldcloak:
1. Declare sensitive fields on a dataclass
2. Get a masked deep copy with one call
3. Render masked JSON without touching the live object
"""

from dataclasses import dataclass, field
from typing import Annotated, Optional

from fieldcloak import (
    DesensitizeEngine,
    Sensitive,
    SensitiveChineseName,
    SensitiveEmail,
    SensitiveIgnore,
    SensitivePassword,
    SensitivePhone,
)
from fieldcloak.strategies import HashStrategy


@dataclass
class Customer:
    name: Annotated[str, SensitiveChineseName()]
    phone: Annotated[str, SensitivePhone()]
    email: str = field(default="", metadata={"sensitive": SensitiveEmail()})
    password: Annotated[Optional[str], SensitivePassword()] = None
    account_ref: Annotated[str, Sensitive(strategy=HashStrategy)] = ""
    internal_id: Annotated[str, SensitiveIgnore()] = ""


@dataclass
class Order:
    order_no: str
    customers: list[Customer] = field(default_factory=list)


def main():
    """Demonstrate the copy and text paths."""
    print("=" * 60)
    print("fieldcloak Simple Usage Example")
    print("=" * 60)

    order = Order(
        order_no="A-001",
        customers=[
            Customer(
                name="脱敏君",
                phone="13812345678",
                email="12345@qq.com",
                password="s3cret",
                account_ref="ACC-42",
                internal_id="C-1",
            ),
        ],
    )

    engine = DesensitizeEngine()  # Uses defaults from the environment

    print("\n1. Masked copy:")
    masked = engine.mask_copy(order)
    for customer in masked.customers:
        print(f"  ✓ {customer}")

    print("\n2. Masked JSON:")
    print(f"  ✓ {engine.mask_json(order)}")

    print("\n3. Original is unchanged:")
    print(f"  ✓ {order.customers[0].phone}")


if __name__ == "__main__":
    main()
