"""Explicit wiring of repositories, services, use cases and the pipeline."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from fastapi import Request

from poupapig_assistant.config import Settings
from poupapig_assistant.repositories.base import (
    CategoryRepository,
    TransactionRepository,
    UserRepository,
)
from poupapig_assistant.repositories.categories import SupabaseCategoryRepository
from poupapig_assistant.repositories.transactions import SupabaseTransactionRepository
from poupapig_assistant.repositories.users import SupabaseUserRepository
from poupapig_assistant.services.cache import Cache, InMemoryCache, RedisCache
from poupapig_assistant.services.dispatcher import ActionDispatcher
from poupapig_assistant.services.intent import (
    IntentService,
    KeywordIntentService,
    OpenAIIntentService,
)
from poupapig_assistant.services.notifications import EvolutionNotifier, Notifier
from poupapig_assistant.services.openai_client import get_openai_client
from poupapig_assistant.services.rate_limiter import RateLimiter, api_policy, webhook_policy
from poupapig_assistant.services.session import SessionResolver
from poupapig_assistant.services.supabase_auth import Authenticator, SupabaseAuthenticator
from poupapig_assistant.services.supabase_client import get_supabase
from poupapig_assistant.use_cases.generate_report import GenerateReport
from poupapig_assistant.use_cases.get_balance import GetBalance
from poupapig_assistant.use_cases.register_transaction import RegisterTransaction
from poupapig_assistant.use_cases.set_monthly_goal import SetMonthlyGoal
from poupapig_assistant.utils.time import local_now
from poupapig_assistant.workflows.process_message import MessagePipeline

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: Settings
    cache: Cache
    users: UserRepository
    notifier: Notifier
    authenticator: Authenticator
    register_transaction: RegisterTransaction
    get_balance: GetBalance
    set_monthly_goal: SetMonthlyGoal
    generate_report: GenerateReport
    pipeline: MessagePipeline
    webhook_limiter: RateLimiter
    api_limiter: RateLimiter

    async def aclose(self) -> None:
        for resource in (self.notifier, self.cache):
            close = getattr(resource, "aclose", None) or getattr(resource, "close", None)
            if close is not None:
                await close()


def build_services(
    settings: Settings,
    *,
    cache: Cache,
    users: UserRepository,
    transactions: TransactionRepository,
    categories: CategoryRepository,
    notifier: Notifier,
    intent: IntentService,
    authenticator: Authenticator,
    clock: Callable[[], datetime] | None = None,
) -> Container:
    clock = clock or (lambda: local_now(settings.timezone))

    register_transaction = RegisterTransaction(users, transactions, categories, notifier, clock)
    get_balance = GetBalance(users, transactions, clock)
    set_monthly_goal = SetMonthlyGoal(users)
    generate_report = GenerateReport(users, transactions, clock)

    dispatcher = ActionDispatcher(
        intent,
        categories,
        cache,
        register_transaction=register_transaction,
        get_balance=get_balance,
        set_monthly_goal=set_monthly_goal,
        generate_report=generate_report,
        default_categories=settings.default_categories,
        summary_ttl_seconds=settings.summary_cache_ttl_seconds,
    )
    sessions = SessionResolver(users, notifier, set_monthly_goal)

    return Container(
        settings=settings,
        cache=cache,
        users=users,
        notifier=notifier,
        authenticator=authenticator,
        register_transaction=register_transaction,
        get_balance=get_balance,
        set_monthly_goal=set_monthly_goal,
        generate_report=generate_report,
        pipeline=MessagePipeline(sessions, dispatcher, notifier),
        webhook_limiter=RateLimiter(cache, webhook_policy(settings)),
        api_limiter=RateLimiter(cache, api_policy(settings)),
    )


def build_intent_service(settings: Settings) -> IntentService:
    client = get_openai_client(settings)
    if client is None:
        logger.warning("OpenAI unavailable; using keyword intent detection.")
        return KeywordIntentService(settings.intent_min_confidence)
    return OpenAIIntentService(
        client,
        settings.openai_model,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
    )


def build_cache(settings: Settings) -> Cache:
    if settings.redis_url:
        return RedisCache.from_url(settings.redis_url, namespace=settings.cache_namespace)
    logger.warning("Redis URL not configured; counters and summaries stay in process memory.")
    return InMemoryCache()


async def build_container(settings: Settings) -> Container:
    supabase = await get_supabase(settings)
    return build_services(
        settings,
        cache=build_cache(settings),
        users=SupabaseUserRepository(supabase, timezone=settings.timezone),
        transactions=SupabaseTransactionRepository(supabase),
        categories=SupabaseCategoryRepository(supabase),
        notifier=EvolutionNotifier(settings),
        intent=build_intent_service(settings),
        authenticator=SupabaseAuthenticator(supabase),
    )


def get_container(request: Request) -> Container:
    return request.app.state.container
