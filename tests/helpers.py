"""
Test helpers: an in-memory stand-in for the Wallet Objects API client.
"""
import json

import httplib2
from googleapiclient.errors import HttpError


def http_error(status, message='fake error'):
    """Build the HttpError the API client raises for a given status."""
    content = json.dumps({'error': {'code': status, 'message': message}}).encode('utf-8')
    return HttpError(httplib2.Response({'status': status}), content)


class FakeRequest:

    def __init__(self, func):
        self._func = func

    def execute(self):
        return self._func()


class FakeWalletResource:
    """Mimics client.loyaltyclass() / client.loyaltyobject()."""

    def __init__(self, client, name):
        self.client = client
        self.name = name

    @property
    def store(self):
        return self.client.stores[self.name]

    def get(self, resourceId):
        def run():
            if self.client.get_error is not None:
                raise self.client.get_error
            if resourceId not in self.store:
                raise http_error(404, 'not found')
            return self.store[resourceId]
        return FakeRequest(run)

    def insert(self, body):
        def run():
            if self.client.write_error is not None:
                raise self.client.write_error
            self.client.calls.append(('insert', self.name, body['id']))
            self.store[body['id']] = body
            return body
        return FakeRequest(run)

    def update(self, resourceId, body):
        def run():
            if self.client.write_error is not None:
                raise self.client.write_error
            self.client.calls.append(('update', self.name, resourceId))
            self.store[resourceId] = body
            return body
        return FakeRequest(run)


class FakeWalletClient:
    """
    In-memory walletobjects client.

    Set get_error or write_error to an exception to make every get or
    insert/update call raise it.
    """

    def __init__(self):
        self.stores = {'loyaltyclass': {}, 'loyaltyobject': {}}
        self.calls = []
        self.get_error = None
        self.write_error = None

    def loyaltyclass(self):
        return FakeWalletResource(self, 'loyaltyclass')

    def loyaltyobject(self):
        return FakeWalletResource(self, 'loyaltyobject')

    def calls_for(self, name):
        return [call for call in self.calls if call[1] == name]
