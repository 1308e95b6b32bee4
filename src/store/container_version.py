"""Computation of the next container version of a native application version."""

from __future__ import annotations

import logging
from typing import Optional

import semantic_version

from common.errors import VersionFormatError
from constants import ConfigKeys, Constants
from descriptors.app_descriptor import DescriptorLike, coerce_descriptor

from .helper import StoreHelper

logger = logging.getLogger(__name__)


def bump_patch(version: str) -> str:
    """Increment the patch component of a strict semantic version.

    Raises:
        VersionFormatError: ``version`` is not a valid semantic version.
    """
    if not semantic_version.validate(version):
        raise VersionFormatError(
            f"{version} is not a semver compliant version and therefore cannot be auto patch "
            "incremented. Please set the new container version explicitly."
        )
    return str(semantic_version.Version(version).next_patch())


async def compute_container_version(
    helper: StoreHelper,
    descriptor: DescriptorLike,
    explicit_version: Optional[str] = None,
) -> str:
    """Next container version for ``descriptor``.

    An explicit version is used verbatim. Otherwise the prior version (per
    descriptor when ``detachContainerVersionFromRoot`` is set, top-level
    otherwise) is patch incremented, defaulting to 1.0.0 when none exists.
    """
    if explicit_version:
        return explicit_version
    d = coerce_descriptor(descriptor)
    detached = await helper.get_config_for_key(ConfigKeys.DETACH_CONTAINER_VERSION_FROM_ROOT, d)
    if detached:
        prior = await helper.get_container_version(d)
    else:
        prior = await helper.get_top_level_container_version(d)
    if not prior:
        return Constants.DEFAULT_CONTAINER_VERSION
    new_version = bump_patch(prior)
    logger.debug("Container version of %s: %s -> %s", d, prior, new_version)
    return new_version
