import sys
import os
import asyncio

import streamlit as st

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.addresses import AddressBook
from storefront.cart import CartStore
from storefront.catalog import CatalogService, CategoryCatalog
from storefront.config import configure_logging, get_settings
from storefront.details import DetailsFlow, missing_selection
from storefront.docstore import DocumentStore
from storefront.domain import Address, CartLineItem, QuantityChange, UserContext, UserProfile
from storefront.orders import OrderHistory, OrderWorkflow
from storefront.pricing import effective_price, format_price
from storefront.profile import ProfileService
from storefront.transforms import load_seed, seed_catalog

CATEGORIES = ["Clothes", "Outdoors"]


def run(coro):
    """Синхронная обёртка для вызова из UI"""
    return asyncio.run(coro)


# ============ Кэширование ресурсов ============
@st.cache_resource
def get_backend():
    settings = get_settings()
    configure_logging(settings)
    store = DocumentStore(max_attempts=settings.transaction_max_attempts)
    run(seed_catalog(store, load_seed(settings.seed_path)))

    user = UserContext(uid="demo-user")
    profile = ProfileService(store, user)
    run(profile.save_profile(UserProfile("Demo", "Shopper", "demo@storefront.dev")))

    cart = CartStore(store, user)
    addresses = AddressBook(store, user)
    cart.start()
    addresses.start()
    profile.start()
    return {
        "store": store,
        "settings": settings,
        "cart": cart,
        "details": DetailsFlow(store, user, cart.mutations),
        "addresses": addresses,
        "orders": OrderWorkflow(store, user),
        "history": OrderHistory(store, user),
        "catalog": CatalogService(store, settings),
        "categories": {c: CategoryCatalog(store, c, settings) for c in CATEGORIES},
        "profile": profile,
    }


# ============ Инициализация ============
st.set_page_config(
    page_title="Storefront",
    page_icon="🛒",
    layout="wide",
    initial_sidebar_state="expanded",
)

backend = get_backend()
cart_store: CartStore = backend["cart"]


def show_product(product, key_prefix: str):
    """Карточка товара с выбором цвета/размера и кнопкой в корзину"""
    cols = st.columns([5, 2, 3, 2])
    with cols[0]:
        st.markdown(f"**{product.name}**")
        if product.description:
            st.caption(product.description)
    with cols[1]:
        price = effective_price(product.price, product.offer_percentage)
        if product.offer_percentage is not None:
            st.write(f"~~{format_price(product.price)}~~ {format_price(price)}")
        else:
            st.write(format_price(price))
    with cols[2]:
        color = None
        size = None
        if product.colors:
            color = st.selectbox(
                "Цвет", [None, *product.colors], key=f"{key_prefix}_color_{product.id}"
            )
        if product.sizes:
            size = st.selectbox(
                "Размер", [None, *product.sizes], key=f"{key_prefix}_size_{product.id}"
            )
    with cols[3]:
        if st.button("➕ В корзину", key=f"{key_prefix}_add_{product.id}"):
            problem = missing_selection(product, color, size)
            if problem.is_some():
                st.warning(problem.value)
            else:
                item = CartLineItem(product, 1, color, size)
                resource = run(backend["details"].add_update_product_in_cart(item))
                if resource.is_error:
                    st.error(resource.message)
                else:
                    st.success(f"✅ {product.name}")
    st.divider()


def show_products(resource, key_prefix: str):
    if resource.is_error:
        st.error(resource.message)
    elif resource.is_success:
        for product in resource.data:
            show_product(product, key_prefix)


# ============ SIDEBAR - Навигация ============
with st.sidebar:
    st.header("📂 Навигация")
    page = st.radio(
        "Раздел:",
        ["🏠 Главная", "📂 Категории", "🛒 Корзина", "🧾 Заказы", "👤 Профиль"],
        label_visibility="collapsed",
    )
    st.divider()
    price = cart_store.products_price.value
    if price is not None:
        st.metric("🛒 В корзине", format_price(price))


# ============ PAGE: ГЛАВНАЯ ============
if page == "🏠 Главная":
    st.header("🏠 Витрина")
    catalog: CatalogService = backend["catalog"]

    if catalog.special_products.value.is_unspecified:
        run(catalog.fetch_special_products())
        run(catalog.fetch_best_deals())
        run(catalog.fetch_best_products())

    st.subheader("⭐ Special Products")
    show_products(catalog.special_products.value, "special")

    st.subheader("💸 Best Deals")
    show_products(catalog.best_deals.value, "deals")

    st.subheader("🏆 Best Products")
    show_products(catalog.best_products.value, "best")
    if catalog.paging.is_paging_end:
        st.caption("Больше товаров нет")
    elif st.button("Загрузить ещё"):
        run(catalog.fetch_best_products())
        st.rerun()


# ============ PAGE: КАТЕГОРИИ ============
elif page == "📂 Категории":
    category = st.selectbox("Категория", CATEGORIES)
    feed: CategoryCatalog = backend["categories"][category]
    if feed.offer_products.value.is_unspecified:
        run(feed.fetch_offer_products())
        run(feed.fetch_best_products())

    st.subheader("🔥 Со скидкой")
    show_products(feed.offer_products.value, f"offer_{category}")
    st.subheader("📦 Остальные")
    show_products(feed.best_products.value, f"cat_{category}")
    if not feed.paging.is_paging_end and st.button("Загрузить ещё"):
        run(feed.fetch_best_products())
        st.rerun()


# ============ PAGE: КОРЗИНА ============
elif page == "🛒 Корзина":
    st.header("🛒 Ваша корзина")

    # подтверждение удаления при уменьшении с 1
    pending = st.session_state.get("pending_delete")
    if pending is None and cart_store.delete_dialog.has_pending:
        pending = cart_store.delete_dialog.poll().value
        st.session_state.pending_delete = pending
    if pending is not None:
        st.warning(f"Удалить {pending.product.name} из корзины?")
        col1, col2 = st.columns(2)
        if col1.button("Удалить"):
            run(cart_store.delete_cart_item(pending))
            st.session_state.pending_delete = None
            st.rerun()
        if col2.button("Отмена"):
            st.session_state.pending_delete = None
            st.rerun()

    resource = cart_store.cart.value
    if resource.is_loading:
        st.info("Загрузка...")
    elif resource.is_error:
        st.error(resource.message)
    elif resource.is_success and not resource.data:
        st.info("🛍️ Корзина пуста")
    elif resource.is_success:
        for item in resource.data:
            cols = st.columns([5, 1, 1, 1, 2])
            with cols[0]:
                variant = " / ".join(
                    str(v) for v in (item.selected_color, item.selected_size) if v is not None
                )
                st.write(f"**{item.product.name}** {variant}")
            with cols[1]:
                if st.button("➖", key=f"dec_{item.document_id}"):
                    run(cart_store.change_quantity(item, QuantityChange.DECREASE))
                    st.rerun()
            with cols[2]:
                st.write(f"× {item.quantity}")
            with cols[3]:
                if st.button("➕", key=f"inc_{item.document_id}"):
                    run(cart_store.change_quantity(item, QuantityChange.INCREASE))
                    st.rerun()
            with cols[4]:
                unit = effective_price(item.product.price, item.product.offer_percentage)
                st.write(format_price(unit * item.quantity))

        st.divider()
        total = cart_store.products_price.value
        st.markdown(f"### 💰 Итого: **{format_price(total)}**")

        # Оформление заказа
        book: AddressBook = backend["addresses"]
        addresses = book.addresses.value.data or ()
        if not addresses:
            st.info("Добавьте адрес в профиле, чтобы оформить заказ")
        else:
            chosen = st.selectbox(
                "Адрес доставки", addresses, format_func=lambda a: a.address_title
            )
            workflow: OrderWorkflow = backend["orders"]
            busy = workflow.order.value.is_loading
            if st.button("✅ Оформить заказ", type="primary", disabled=busy):
                result = run(workflow.place_order(resource.data, total, chosen))
                if result.is_left:
                    st.error(result.value.message)
                elif result.value.is_error:
                    st.error(f"❌ {result.value.message}")
                else:
                    st.success(f"🎉 Заказ №{result.value.data.order_id} оформлен")
                    st.balloons()


# ============ PAGE: ЗАКАЗЫ ============
elif page == "🧾 Заказы":
    st.header("🧾 Мои заказы")
    history: OrderHistory = backend["history"]
    resource = run(history.fetch_orders())
    if resource.is_error:
        st.error(resource.message)
    elif not resource.data:
        st.info("Заказов пока нет")
    else:
        for order in resource.data:
            with st.expander(f"№{order.order_id}, {order.date}, {order.order_status.value}"):
                for item in order.products:
                    st.write(f"{item.product.name} × {item.quantity}")
                st.write(f"Адрес: {order.address.street}, {order.address.city}")
                st.markdown(f"**{format_price(order.total_price)}**")


# ============ PAGE: ПРОФИЛЬ ============
elif page == "👤 Профиль":
    st.header("👤 Профиль")
    profile: ProfileService = backend["profile"]
    current = profile.profile.value
    if current.is_success:
        user = current.data
        with st.form("profile"):
            first = st.text_input("Имя", user.first_name)
            last = st.text_input("Фамилия", user.last_name)
            email = st.text_input("Email", user.email)
            if st.form_submit_button("Сохранить"):
                result = run(profile.update_profile(UserProfile(first, last, email)))
                if result.is_left:
                    st.error(result.value.message)
                elif result.value.is_error:
                    st.error(result.value.message)
                else:
                    st.success("Сохранено")

    st.subheader("📍 Адреса")
    book: AddressBook = backend["addresses"]
    for address in book.addresses.value.data or ():
        st.write(f"**{address.address_title}**, {address.street}, {address.city}")

    with st.form("address"):
        fields = [
            st.text_input(label)
            for label in ("Название", "ФИО", "Улица", "Телефон", "Город", "Регион")
        ]
        if st.form_submit_button("Добавить адрес"):
            result = run(book.add_address(Address(*fields)))
            if result.is_left:
                st.error(result.value.message)
            elif result.value.is_error:
                st.error(result.value.message)
            else:
                st.success("Адрес добавлен")
                st.rerun()
