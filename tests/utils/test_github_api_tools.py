#!/usr/bin/env python3
# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Unit tests for github_api_tools module.

Tests the GitHub API interaction functions, particularly focusing on:
- Retry logic for transient failures (502, 503, 504)
- Rate limit detection and waiting
- Pagination and ordering of the open PR listing

Run with: python run_tests.py tests/utils/
"""

from unittest.mock import Mock, call, patch

import pytest
import requests

from pending_plugins.utils.github_api_tools import (
    build_search_query,
    get_github_graphql_query,
    list_open_change_requests,
    parse_pull_request_node,
    rate_limit_wait_seconds,
)

API = 'pending_plugins.utils.github_api_tools'


# ============================================================================
# Fixtures
# ============================================================================


def make_response(status_code=200, payload=None, text='', headers=None):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    response.json.return_value = payload
    return response


def search_page(nodes, has_next=False, cursor=None):
    return make_response(
        payload={
            'data': {
                'search': {
                    'issueCount': len(nodes),
                    'pageInfo': {'hasNextPage': has_next, 'endCursor': cursor},
                    'nodes': nodes,
                }
            }
        }
    )


def pr_node(number, login, title=''):
    return {'number': number, 'title': title, 'author': {'login': login} if login else None}


# ============================================================================
# GraphQL Retry Logic Tests
# ============================================================================


class TestGraphQLRetryLogic:
    """Test suite for request retry logic in get_github_graphql_query."""

    @patch(f'{API}.time.sleep')
    @patch(f'{API}.requests.post')
    def test_success_on_first_attempt(self, mock_post, mock_sleep):
        mock_post.return_value = make_response(200)

        result = get_github_graphql_query('fake_token', 'query', {})

        assert result is mock_post.return_value
        assert mock_post.call_count == 1
        mock_sleep.assert_not_called()

    @patch(f'{API}.time.sleep')
    @patch(f'{API}.requests.post')
    def test_retry_on_502_then_success(self, mock_post, mock_sleep):
        mock_post.side_effect = [make_response(502, text='Bad Gateway'), make_response(503), make_response(200)]

        result = get_github_graphql_query('fake_token', 'query', {})

        assert result.status_code == 200
        assert mock_post.call_count == 3
        mock_sleep.assert_has_calls([call(5), call(10)])

    @patch(f'{API}.time.sleep')
    @patch(f'{API}.requests.post')
    def test_gives_up_after_max_attempts(self, mock_post, mock_sleep):
        mock_post.return_value = make_response(502, text='Bad Gateway')

        result = get_github_graphql_query('fake_token', 'query', {})

        assert result is None
        assert mock_post.call_count == 6
        assert [c.args[0] for c in mock_sleep.call_args_list] == [5, 10, 20, 40, 80]

    @patch(f'{API}.time.sleep')
    @patch(f'{API}.requests.post')
    def test_connection_error_is_retried(self, mock_post, mock_sleep):
        mock_post.side_effect = [requests.exceptions.ConnectionError('reset'), make_response(200)]

        result = get_github_graphql_query('fake_token', 'query', {})

        assert result.status_code == 200
        mock_sleep.assert_called_once_with(5)

    @patch(f'{API}.time.sleep')
    @patch(f'{API}.requests.post')
    def test_rate_limit_waits_then_retries(self, mock_post, mock_sleep):
        limited = make_response(429, text='API rate limit exceeded')
        mock_post.side_effect = [limited, make_response(200)]

        result = get_github_graphql_query('fake_token', 'query', {})

        assert result.status_code == 200
        mock_sleep.assert_called_once_with(60)

    @patch(f'{API}.requests.post')
    def test_sends_bearer_token_and_variables(self, mock_post):
        mock_post.return_value = make_response(200)

        get_github_graphql_query('fake_token', 'query Q', {'x': 1})

        kwargs = mock_post.call_args.kwargs
        assert kwargs['headers']['Authorization'] == 'Bearer fake_token'
        assert kwargs['json'] == {'query': 'query Q', 'variables': {'x': 1}}


class TestRateLimitWait:
    def test_success_is_not_rate_limited(self):
        assert rate_limit_wait_seconds(make_response(200)) is None

    def test_plain_forbidden_is_not_rate_limited(self):
        assert rate_limit_wait_seconds(make_response(403, text='Resource not accessible')) is None

    @patch(f'{API}.time.time', return_value=1_000_000)
    def test_waits_until_reset(self, mock_time):
        response = make_response(403, headers={'X-RateLimit-Remaining': '0', 'X-RateLimit-Reset': '1000030'})
        assert rate_limit_wait_seconds(response) == 35

    @patch(f'{API}.time.time', return_value=1_000_000)
    def test_wait_is_capped(self, mock_time):
        response = make_response(403, headers={'X-RateLimit-Remaining': '0', 'X-RateLimit-Reset': '9000000'})
        assert rate_limit_wait_seconds(response) == 900

    def test_retry_after_header(self):
        response = make_response(429, text='You have exceeded a secondary rate limit', headers={'Retry-After': '20'})
        assert rate_limit_wait_seconds(response) == 25

    def test_default_wait_without_reset_time(self):
        assert rate_limit_wait_seconds(make_response(429, text='API rate limit exceeded')) == 60


# ============================================================================
# PR listing
# ============================================================================


class TestSearchQuery:
    def test_query_scopes_repo_and_open_prs(self):
        assert (
            build_search_query('obsidianmd/obsidian-releases', 'community-plugins in:path')
            == 'repo:obsidianmd/obsidian-releases is:pr is:open community-plugins in:path'
        )

    def test_empty_filter(self):
        assert build_search_query('o/r', '') == 'repo:o/r is:pr is:open'


class TestParsePullRequestNode:
    def test_pull_request(self):
        assert parse_pull_request_node(pr_node(7, 'Alice', 'Add plugin: Foo')) == (7, 'Alice', 'Add plugin: Foo')

    def test_deleted_author(self):
        assert parse_pull_request_node(pr_node(7, None)) == (7, '', '')

    def test_non_pr_node(self):
        assert parse_pull_request_node({}) is None


class TestListOpenChangeRequests:
    @patch(f'{API}.get_github_graphql_query')
    def test_paginates_and_orders_by_number(self, mock_query):
        mock_query.side_effect = [
            search_page([pr_node(30, 'Bob', 'Add plugin: B'), pr_node(10, 'alice')], has_next=True, cursor='c1'),
            search_page([{}, pr_node(20, None, 'Orphan'), pr_node(10, 'alice')]),
        ]

        result = list_open_change_requests('o/r', 'fake_token', 'community-plugins in:path')

        assert [cr.number for cr in result] == [10, 20, 30]
        assert [cr.discovery_order for cr in result] == [0, 1, 2]
        assert result[2].owner_login == 'bob'
        assert result[1].owner_login == ''
        assert mock_query.call_args_list[0].args[2]['cursor'] is None
        assert mock_query.call_args_list[1].args[2]['cursor'] == 'c1'
        assert mock_query.call_args_list[0].args[2]['searchQuery'] == 'repo:o/r is:pr is:open community-plugins in:path'

    @patch(f'{API}.get_github_graphql_query')
    def test_respects_limit(self, mock_query):
        mock_query.return_value = search_page([pr_node(1, 'a'), pr_node(2, 'b')], has_next=True, cursor='c1')

        result = list_open_change_requests('o/r', 'fake_token', limit=2)

        assert [cr.number for cr in result] == [1, 2]
        assert mock_query.call_count == 1
        assert mock_query.call_args.args[2]['limit'] == 2

    @patch(f'{API}.get_github_graphql_query', return_value=None)
    def test_request_failure(self, mock_query):
        assert list_open_change_requests('o/r', 'fake_token') is None

    @patch(f'{API}.get_github_graphql_query')
    def test_graphql_errors(self, mock_query):
        mock_query.return_value = make_response(payload={'errors': [{'message': 'bad query'}]})
        assert list_open_change_requests('o/r', 'fake_token') is None

    @patch(f'{API}.get_github_graphql_query')
    def test_empty_listing(self, mock_query):
        mock_query.return_value = search_page([])
        assert list_open_change_requests('o/r', 'fake_token') == []


@pytest.mark.parametrize('status', [500, 502, 504])
@patch(f'{API}.time.sleep')
@patch(f'{API}.requests.post')
def test_server_errors_are_retried(mock_post, mock_sleep, status):
    mock_post.side_effect = [make_response(status), make_response(200)]
    assert get_github_graphql_query('fake_token', 'query', {}).status_code == 200
