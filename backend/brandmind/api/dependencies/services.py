"""Accessors for the long-lived components stored on ``app.state``."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brandmind.config.settings import Settings
from brandmind.credentials.encryption import CredentialCipher
from brandmind.database.session import get_db_session
from brandmind.services.account_service import AccountService
from brandmind.services.chat_service import ChatService
from brandmind.services.completion_client import CompletionClient
from brandmind.services.content_service import ContentService
from brandmind.services.post_service import PostService
from brandmind.services.token_service import TokenService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_cipher(request: Request) -> CredentialCipher:
    return request.app.state.cipher


def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completion_client


def get_account_service(
    session: AsyncSession = Depends(get_db_session),
    token_service: TokenService = Depends(get_token_service),
) -> AccountService:
    return AccountService(session, token_service)


def get_content_service(
    session: AsyncSession = Depends(get_db_session),
    client: CompletionClient = Depends(get_completion_client),
    settings: Settings = Depends(get_settings),
    cipher: CredentialCipher = Depends(get_cipher),
) -> ContentService:
    return ContentService(session, client, settings, cipher)


def get_chat_service(
    session: AsyncSession = Depends(get_db_session),
    content: ContentService = Depends(get_content_service),
) -> ChatService:
    return ChatService(session, content)


def get_post_service(session: AsyncSession = Depends(get_db_session)) -> PostService:
    return PostService(session)
