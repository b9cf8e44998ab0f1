"""Interactive login that prints a string session for TELEGRAM_SESSION."""

import logging
import os
from getpass import getpass

import qrcode
from dotenv import load_dotenv
from telethon import TelegramClient, errors
from telethon.sessions import StringSession

load_dotenv()


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _resolve_2fa_password() -> str:
    password = os.getenv("2FA")
    if password:
        return password
    return getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    await qr.wait(timeout=120)


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    try:
        await client.sign_in(phone=phone, code=code)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


def _pick_login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        print("Select a login method: \n")
        choice = input("relay > ").strip()
        if choice == "1":
            return "qr"
        elif choice == "2":
            return "phone"
        elif choice == "3":
            raise SystemExit(0)
        else:
            print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(client: TelegramClient) -> None:
    if await client.is_user_authorized():
        return

    try:
        method = _pick_login_method()
        if method == "phone":
            await _authorize_with_phone(client)
        else:
            await _authorize_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_resolve_2fa_password())


async def generate_session(client: TelegramClient) -> str:
    """Log in on a fresh StringSession client and return the session string."""

    await client.connect()
    try:
        await authorize(client)
        me = await client.get_me()
        logging.getLogger(__name__).info("Logged in as: %s", getattr(me, "first_name", "?"))
        return client.session.save()
    finally:
        await client.disconnect()


def print_session(session_string: str) -> None:
    print("\nCopy the session string below into your .env as TELEGRAM_SESSION:\n")
    print(session_string)
    print("\nDone.")


def new_session_client() -> TelegramClient:
    api_id = os.getenv("API_ID") or input("Enter API_ID: ").strip()
    api_hash = os.getenv("API_HASH") or input("Enter API_HASH: ").strip()
    return TelegramClient(StringSession(), int(api_id), api_hash, connection_retries=5)
