"""Read-modify-write operations on per-domain configuration documents."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from formpilot.errors import DomainNotFound, SelectorNotFound, TemplateNotFound
from formpilot.models import (
    CommandTemplate,
    DomainConfig,
    SelectorDefinition,
    TestUrl,
    domain_path,
    normalize_domain,
)
from formpilot.store.base import DocumentStore

log = logging.getLogger(__name__)


class DomainConfigService:
    """Domain schemas stored under ``domains/<normalized domain>``.

    Every mutation re-reads the document, changes it in memory and writes it
    back with merge semantics. Concurrent writers to the same domain are
    last-write-wins.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def save_domain_config(self, config: DomainConfig) -> DomainConfig:
        now = datetime.now(timezone.utc)
        if config.created_at is None:
            config.created_at = now
        config.last_updated = now
        self.store.set(domain_path(config.domain), config.to_document(), merge=True)
        return config

    def get_domain_config(self, domain: str) -> DomainConfig | None:
        doc = self.store.get(domain_path(domain))
        if doc is None:
            return None
        return DomainConfig.model_validate(doc)

    def require(self, domain: str) -> DomainConfig:
        config = self.get_domain_config(domain)
        if config is None:
            raise DomainNotFound(domain)
        return config

    def initialize_domain(self, domain: str) -> DomainConfig:
        log.info("Initializing domain %s", normalize_domain(domain))
        return self.save_domain_config(DomainConfig(domain=domain))

    def delete_domain(self, domain: str) -> None:
        log.info("Deleting domain %s", normalize_domain(domain))
        self.store.delete(domain_path(domain))

    def recent_domains(self, limit: int = 10) -> list[DomainConfig]:
        configs = [DomainConfig.model_validate(doc) for doc in self.store.list("domains")]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        configs.sort(key=lambda c: c.last_updated or epoch, reverse=True)
        return configs[:limit]

    # ------------------------------------------------------------------
    # Selectors
    # ------------------------------------------------------------------

    def add_selector(self, domain: str, key: str, definition: SelectorDefinition) -> None:
        config = self.require(domain)
        config.selectors[key] = definition
        self.save_domain_config(config)

    def update_selector(self, domain: str, key: str, **fields) -> None:
        config = self.require(domain)
        existing = config.selectors.get(key)
        if existing is None:
            raise SelectorNotFound(key)
        config.selectors[key] = existing.model_copy(update=fields)
        self.save_domain_config(config)

    def delete_selector(self, domain: str, key: str) -> None:
        config = self.require(domain)
        config.selectors.pop(key, None)
        self.save_domain_config(config)

    # ------------------------------------------------------------------
    # Command templates
    # ------------------------------------------------------------------

    def add_command_template(self, domain: str, template: CommandTemplate) -> None:
        config = self.require(domain)
        config.commands.append(template)
        self.save_domain_config(config)

    def update_command_template(self, domain: str, name: str, **fields) -> None:
        config = self.require(domain)
        for index, template in enumerate(config.commands):
            if template.name == name:
                config.commands[index] = template.model_copy(update=fields)
                break
        else:
            raise TemplateNotFound(name)
        self.save_domain_config(config)

    def delete_command_template(self, domain: str, name: str) -> None:
        config = self.require(domain)
        config.commands = [t for t in config.commands if t.name != name]
        self.save_domain_config(config)

    # ------------------------------------------------------------------
    # Test URLs
    # ------------------------------------------------------------------

    def add_test_url(self, domain: str, test_url: TestUrl) -> None:
        config = self.require(domain)
        config.test_urls = [tu for tu in config.test_urls if tu.url != test_url.url]
        config.test_urls.append(test_url)
        self.save_domain_config(config)
