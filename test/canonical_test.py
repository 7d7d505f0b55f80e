#!/usr/bin/env python
from hashlib import sha256
from unittest import TestCase

import awssigner.canonical as canonical
from awssigner.exc import AmbiguousHeaderError, InvalidRequestError

host = "example.amazonaws.com"
amz_date = "20150830T123600Z"
empty_sha256 = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855")
unreserved = ("-._~0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
              "abcdefghijklmnopqrstuvwxyz")


class CanonicalRequestTest(TestCase):
    def test_get_vanilla(self):
        cr = canonical.build_canonical_request(
            "GET", "https://example.amazonaws.com/",
            {"host": host, "x-amz-date": amz_date}, b"")

        self.assertEqual(
            str(cr),
            "GET\n"
            "/\n"
            "\n"
            "host:example.amazonaws.com\n"
            "x-amz-date:20150830T123600Z\n"
            "\n"
            "host;x-amz-date\n"
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855")
        self.assertEqual(cr.signed_header_names, "host;x-amz-date")
        self.assertEqual(cr.payload_hash, empty_sha256)

    def test_method_is_upper_cased(self):
        cr = canonical.build_canonical_request(
            "post", "https://example.amazonaws.com/", {"host": host}, b"")
        self.assertEqual(cr.method, "POST")

    def test_payload_hash(self):
        self.assertEqual(canonical.hash_payload(b""), empty_sha256)
        self.assertEqual(canonical.hash_payload(None), empty_sha256)
        self.assertEqual(canonical.hash_payload(""), empty_sha256)
        self.assertEqual(canonical.SHA256_EMPTY_DIGEST, empty_sha256)

        body = b'{"messages": [{"role": "user", "text": "Hello"}]}'
        self.assertEqual(canonical.hash_payload(body),
                         sha256(body).hexdigest())
        self.assertEqual(canonical.hash_payload(bytearray(body)),
                         sha256(body).hexdigest())
        self.assertEqual(canonical.hash_payload(u"ሴ"),
                         sha256(u"ሴ".encode("utf-8")).hexdigest())

        with self.assertRaises(TypeError):
            canonical.hash_payload(42)

    def test_bad_method(self):
        with self.assertRaises(TypeError):
            canonical.build_canonical_request(
                None, "https://example.amazonaws.com/", {}, b"")

        with self.assertRaises(InvalidRequestError):
            canonical.build_canonical_request(
                " ", "https://example.amazonaws.com/", {}, b"")

    def test_no_headers(self):
        cr = canonical.build_canonical_request(
            "GET", "https://example.amazonaws.com/", None, b"")
        self.assertEqual(cr.canonical_headers, "")
        self.assertEqual(cr.signed_header_names, "")


class HeaderTest(TestCase):
    def test_case_insensitive(self):
        upper = canonical.build_canonical_request(
            "GET", "https://example.amazonaws.com/",
            {"Host": host, "X-Amz-Date": amz_date, "My-Header1": "value1"},
            b"")
        lower = canonical.build_canonical_request(
            "GET", "https://example.amazonaws.com/",
            {"host": host, "x-amz-date": amz_date, "my-header1": "value1"},
            b"")

        self.assertEqual(str(upper), str(lower))
        self.assertEqual(upper.signed_header_names,
                         "host;my-header1;x-amz-date")

    def test_sorted(self):
        result = canonical.canonicalize_headers({
            "X-Amz-Date": amz_date, "Host": host, "Content-Type": "a/b",
            "accept": "application/json"})
        self.assertEqual(list(result.keys()), [
            "accept", "content-type", "host", "x-amz-date"])

    def test_value_trim(self):
        result = canonical.canonicalize_headers({
            "My-Header1": "  value1  ", "My-Header2": "\t\"a   b   c\" "})
        self.assertEqual(result["my-header1"], "value1")
        # Only leading and trailing whitespace is removed.
        self.assertEqual(result["my-header2"], "\"a   b   c\"")

    def test_multiple_values(self):
        result = canonical.canonicalize_headers({
            "My-Header1": ["value4", " value1 ", "value3"]})
        self.assertEqual(result["my-header1"], "value4,value1,value3")

    def test_ambiguous(self):
        with self.assertRaises(AmbiguousHeaderError):
            canonical.canonicalize_headers({"X-Foo": "a", "x-foo": "b"})

        # AmbiguousHeaderError is an InvalidRequestError.
        with self.assertRaises(InvalidRequestError):
            canonical.canonicalize_headers({"HOST": "a", "host": "b"})

        result = canonical.canonicalize_headers({"X-Foo": "a", "x-foo": "a "})
        self.assertEqual(list(result.items()), [("x-foo", "a")])

    def test_authorization_not_signed(self):
        result = canonical.canonicalize_headers({
            "Host": host, "Authorization": "Bearer abc"})
        self.assertEqual(list(result.keys()), ["host"])

    def test_bad_headers(self):
        with self.assertRaises(TypeError):
            canonical.canonicalize_headers("Host: foo")

        with self.assertRaises(TypeError):
            canonical.canonicalize_headers({"Host": 0})

        with self.assertRaises(TypeError):
            canonical.canonicalize_headers({0: "Foo"})

        with self.assertRaises(TypeError):
            canonical.canonicalize_headers({"Host": [host, 0]})

        with self.assertRaises(InvalidRequestError):
            canonical.canonicalize_headers({"Bad Header": "x"})

        with self.assertRaises(InvalidRequestError):
            canonical.canonicalize_headers({"X-Foo": "a\r\nX-Bar: b"})


class PathTest(TestCase):
    def check(self, path, expected):
        self.assertEqual(canonical.get_canonical_uri_path(path), expected)

    def test_normalize(self):
        self.check("", "/")
        self.check("/", "/")
        self.check("//", "/")
        self.check("/example/..", "/")
        self.check("/example1/example2/../..", "/")
        self.check("/./", "/")
        self.check("/example/./", "/example/")
        self.check("/a//b///c", "/a/b/c")
        self.check("/a/./b/../c", "/a/c")
        self.check("/example space/", "/example%20space/")
        self.check(u"/ሴ", "/%E1%88%B4")
        self.check("/" + unreserved, "/" + unreserved)
        self.check("/a+b", "/a%2Bb")

    def test_bad_paths(self):
        with self.assertRaises(InvalidRequestError):
            canonical.get_canonical_uri_path("relative/path")

        with self.assertRaises(InvalidRequestError):
            canonical.get_canonical_uri_path("/..")

        for path in ("/%zz", "/a%-1b", "/a% 1b", "/a%+4b"):
            for double_encode in (True, False):
                with self.assertRaises(InvalidRequestError):
                    canonical.get_canonical_uri_path(path, double_encode)

    def test_double_encoded(self):
        # Escapes already in the path are encoded a second time.
        self.check("/docs/my%20file.pdf", "/docs/my%2520file.pdf")
        self.check("/%7euser/%2a", "/%257euser/%252a")
        self.check("/a%2Bb//./c", "/a%252Bb/c")

    def test_s3(self):
        def check(path, expected):
            self.assertEqual(canonical.get_canonical_uri_path(path, False),
                             expected)

        check("/docs/my%20file.pdf", "/docs/my%20file.pdf")
        check("/a+b", "/a%2Bb")
        check("/%7euser/%2a", "/~user/%2A")
        # Slashes and dots are part of an S3 key.
        check("/a//b/../c", "/a//b/../c")

    def test_incomplete_percent(self):
        self.assertEqual(canonical.normalize_uri_path_component("a%2"),
                         "a%252")


class QueryTest(TestCase):
    def query(self, url):
        return canonical.build_canonical_request(
            "GET", url, {"host": host}, b"").canonical_query

    def test_empty(self):
        self.assertEqual(self.query("https://example.amazonaws.com/"), "")
        self.assertEqual(self.query("https://example.amazonaws.com/?"), "")

    def test_order_key(self):
        self.assertEqual(
            self.query("https://example.amazonaws.com/"
                       "?Param2=value2&Param1=value1"),
            "Param1=value1&Param2=value2")

    def test_order_key_case(self):
        self.assertEqual(
            self.query("https://example.amazonaws.com/"
                       "?param1=value1&Param1=value2"),
            "Param1=value2&param1=value1")

    def test_order_value(self):
        self.assertEqual(
            self.query("https://example.amazonaws.com/"
                       "?Param1=value2&Param1=Value1"),
            "Param1=Value1&Param1=value2")

    def test_key_sorts_before_value(self):
        # "a" < "a-b" even though "a=" > "a-b=" as plain strings.
        self.assertEqual(
            self.query("https://example.amazonaws.com/?a-b=1&a=2"),
            "a=2&a-b=1")

    def test_unreserved(self):
        self.assertEqual(
            self.query("https://example.amazonaws.com/?%s=%s" %
                       (unreserved, unreserved)),
            "%s=%s" % (unreserved, unreserved))

    def test_encoding(self):
        self.assertEqual(
            self.query(u"https://example.amazonaws.com/?ሴ=bar"),
            "%E1%88%B4=bar")
        self.assertEqual(
            self.query("https://example.amazonaws.com/?a=b+c&d=%2f"),
            "a=b%20c&d=%2F")

    def test_empty_key_and_components(self):
        self.assertEqual(
            self.query("https://example.amazonaws.com/?Param1&&foo=bar"),
            "Param1=&foo=bar")

    def test_bad_encoding(self):
        for query in ("a=%zz1", "a=%-1b", "a=% 1b", "a=%+4b", "%-1=b"):
            with self.assertRaises(InvalidRequestError):
                self.query("https://example.amazonaws.com/?" + query)

    def test_plus_is_space(self):
        self.assertEqual(
            self.query("https://example.amazonaws.com/?q=a+b%2Bc"),
            "q=a%20b%2Bc")


class UrlTest(TestCase):
    def test_bad_urls(self):
        for url in ("not a url", "/relative/path", "example.com/path",
                    "http://example.com:notaport/", "http://[::1/", "https://"):
            with self.assertRaises(InvalidRequestError):
                canonical.build_canonical_request("GET", url, {}, b"")

        with self.assertRaises(TypeError):
            canonical.build_canonical_request("GET", None, {}, b"")

    def test_host_from_url(self):
        self.assertEqual(
            canonical.host_from_url("https://Example.AmazonAWS.com/path"),
            "example.amazonaws.com")
        self.assertEqual(
            canonical.host_from_url("https://example.com:443/"),
            "example.com")
        self.assertEqual(
            canonical.host_from_url("http://example.com:80/"), "example.com")
        self.assertEqual(
            canonical.host_from_url("http://example.com:443/"),
            "example.com:443")
        self.assertEqual(
            canonical.host_from_url("http://localhost:8080/"),
            "localhost:8080")
        self.assertEqual(
            canonical.host_from_url("http://user:pw@example.com/"),
            "example.com")
        self.assertEqual(
            canonical.host_from_url("http://[::1]:8080/"), "[::1]:8080")
