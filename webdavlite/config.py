"""
Configuration file handling.

A configuration file is a JSON (or, if PyYAML is installed, YAML)
document with one object per section::

    {
        "default": {"webdav_url": "https://dav.example.com/", "webdav_user": "me"},
        "work": {"inherits": "default", "webdav_url": "https://dav.example.org/"}
    }

A section may also be a "meta"-section, ``{"contains": ["work", "home"]}``,
and sections with ``"disable": true`` are skipped when expanding.
"""
import json
import os
from fnmatch import fnmatch

from webdavlite.lib.error import log

CONFIG_FILES = (
    "~/.config/webdavlite/webdav.conf",
    "~/.config/webdavlite/webdav.yaml",
    "~/.config/webdavlite/webdav.json",
    "/etc/webdavlite/webdav.conf",
)


def _disabled(config, section):
    return bool(config[section].get("disable", False))


def expand_config_section(config, section="default", blacklist=None):
    """
    Returns the names of the sections ``section`` stands for.

    * ``*`` stands for every section
    * a glob pattern (``work_*``) for every section it matches
    * a meta-section for the sections it ``contains``, recursively
    * any other name for itself

    Disabled and unknown sections are left out.
    """
    if section == "*":
        return [name for name in config if not _disabled(config, name)]
    if not set(section).isdisjoint("[*?"):
        return [
            name
            for name in config
            if fnmatch(name, section) and not _disabled(config, name)
        ]
    if section not in config:
        return []
    if "contains" not in config[section]:
        return [] if _disabled(config, section) else [section]

    ## meta-sections may refer to each other, don't loop
    blacklist = (blacklist or set()) | {section}
    results = []
    for subsection in config[section]["contains"]:
        if subsection in blacklist:
            continue
        for name in expand_config_section(config, subsection, blacklist):
            if name not in results:
                results.append(name)
    return results


def config_section(config, section="default"):
    """The settings of ``section``, on top of the ones it ``inherits``"""
    if section not in config:
        return {}
    settings = config[section]
    if "inherits" in settings:
        ret = config_section(config, settings["inherits"])
    else:
        ret = {}
    ret.update(settings)
    return ret


def _parse(fn, data):
    try:
        return json.loads(data)
    except ValueError:
        pass
    try:
        import yaml
    except ImportError:
        log.error(f"config file {fn} is not valid json, and pyyaml is not installed")
        return {}
    try:
        return yaml.safe_load(data)
    except yaml.YAMLError:
        log.error(f"config file {fn} is neither valid json nor yaml, it will be ignored")
        return {}


def read_config(fn=None):
    """
    Reads the configuration file ``fn``.  Without ``fn``, the first
    non-empty file of CONFIG_FILES is read, and None returned if there
    is none.  A missing or unreadable ``fn`` gives an empty config.
    """
    if not fn:
        for candidate in CONFIG_FILES:
            cfg = read_config(os.path.expanduser(candidate))
            if cfg:
                return cfg
        return None

    try:
        with open(fn, "rb") as config_file:
            data = config_file.read()
    except FileNotFoundError:
        log.info(f"no config file found at {fn}")
        return {}
    return _parse(fn, data)
