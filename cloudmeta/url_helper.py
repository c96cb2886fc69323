# This file is part of cloudmeta. See LICENSE file for license information.

import logging
from typing import Dict, Optional
from urllib import parse

import requests

from cloudmeta import __version__

LOG = logging.getLogger(__name__)

USER_AGENT = "cloudmeta/%s" % __version__


def combine_url(base, *add_ons):
    def combine_single(url, add_on):
        url_parsed = list(parse.urlparse(url))
        path = url_parsed[2]
        if path and not path.endswith("/"):
            path += "/"
        path += parse.quote(str(add_on), safe="/:")
        url_parsed[2] = path
        return parse.urlunparse(url_parsed)

    url = base
    for add_on in add_ons:
        url = combine_single(url, add_on)
    return url


class UrlResponse:
    def __init__(self, response: requests.Response):
        self._response = response

    @property
    def contents(self) -> bytes:
        if self._response.content is None:
            return b""
        return self._response.content

    @property
    def code(self) -> int:
        return self._response.status_code

    @property
    def headers(self):
        return self._response.headers

    def ok(self, redirects_ok=False) -> bool:
        upper = 300
        if redirects_ok:
            upper = 400
        return 200 <= self.code < upper

    def __str__(self):
        return self._response.text


class UrlError(IOError):
    def __init__(self, cause, code=None, headers=None, url=None):
        IOError.__init__(self, str(cause))
        self.cause = cause
        self.code = code
        self.headers = headers if headers is not None else {}
        self.url = url


def readurl(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
    check_status: bool = True,
) -> UrlResponse:
    """Read a url with a single GET request.

    :param url: the url to fetch.
    :param headers: optional headers sent in addition to the User-Agent.
    :param timeout: seconds to wait for the server, None waits as long as
        the underlying transport does.
    :param check_status: raise UrlError on any HTTP error status.
    :raises UrlError: on transport failure or, if check_status, on a
        4xx/5xx response.
    """
    req_headers = {"User-Agent": USER_AGENT}
    if headers:
        req_headers.update(headers)

    LOG.debug("Reading from %s", url)
    try:
        r = requests.get(url, headers=req_headers, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise UrlError(e, url=url) from e

    LOG.debug("Read from %s (%s, %sb)", url, r.status_code, len(r.content))
    if check_status:
        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise UrlError(
                e, code=r.status_code, headers=r.headers, url=url
            ) from e
    return UrlResponse(r)
