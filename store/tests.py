import io
import os
import shutil
import tempfile
from unittest.mock import patch

from PIL import Image
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import transaction
from django.test import override_settings
from rest_framework.test import APITestCase
from rest_framework import status

from .models import Category, Product, Cart, CartItem


def make_image(name='photo.png', fmt='PNG', content_type='image/png'):
    buffer = io.BytesIO()
    Image.new('RGB', (8, 8), color='red').save(buffer, format=fmt)
    return SimpleUploadedFile(name, buffer.getvalue(), content_type=content_type)


class StoreTestMixin:
    def create_users(self):
        User = get_user_model()
        self.customer = User.objects.create_user(email='cust@example.com', username='customer', password='S3cure-pass!')
        self.other = User.objects.create_user(email='other@example.com', username='other', password='S3cure-pass!')
        self.admin = User.objects.create_user(
            email='admin@example.com', username='admin', password='S3cure-pass!', role='admin'
        )


class CartReconciliationTests(StoreTestMixin, APITestCase):
    def setUp(self):
        cache.clear()
        self.create_users()
        self.category = Category.objects.create(name='Gadgets')
        self.product = Product.objects.create(
            name='Test Product', description='A thing', price='10.00', stock=5, category=self.category
        )
        self.client.force_authenticate(user=self.customer)

    def add(self, quantity, product=None):
        product = product or self.product
        return self.client.post('/api/store/cart/', {'product_id': product.pk, 'quantity': quantity}, format='json')

    def test_get_creates_empty_cart(self):
        resp = self.client.get('/api/store/cart/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['items'], [])
        self.assertEqual(resp.data['data']['total_items'], 0)
        self.assertTrue(Cart.objects.filter(customer=self.customer).exists())

    def test_add_creates_line(self):
        resp = self.add(2)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.data['data']
        self.assertEqual(len(data['items']), 1)
        self.assertEqual(data['items'][0]['quantity'], 2)
        self.assertEqual(data['items'][0]['subtotal'], '20.00')
        self.assertEqual(data['total'], '20.00')

    def test_add_merges_existing_line(self):
        self.add(2)
        resp = self.add(3)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(CartItem.objects.get(cart__customer=self.customer).quantity, 5)
        self.assertEqual(resp.data['data']['total_items'], 5)

    def test_add_locks_product_row(self):
        with patch.object(Product.objects, 'select_for_update', wraps=Product.objects.select_for_update) as locked:
            resp = self.add(1)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(locked.called)

    def test_merge_beyond_stock_is_rejected(self):
        self.add(4)
        resp = self.add(2)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data['success'])
        self.assertIn('Only 1 more can be added', resp.data['error'])
        self.assertEqual(CartItem.objects.get(cart__customer=self.customer).quantity, 4)

    def test_new_line_beyond_stock_is_rejected(self):
        resp = self.add(6)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error_code'], 'insufficient_stock')
        self.assertFalse(CartItem.objects.exists())

    def test_add_requires_positive_quantity(self):
        resp = self.add(0)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_add_unknown_product(self):
        resp = self.client.post('/api/store/cart/', {'product_id': 9999, 'quantity': 1}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_set_quantity(self):
        self.add(1)
        resp = self.client.put(f'/api/store/cart/items/{self.product.pk}/', {'quantity': 4}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['items'][0]['quantity'], 4)

    def test_set_quantity_zero_removes_line(self):
        self.add(2)
        resp = self.client.put(f'/api/store/cart/items/{self.product.pk}/', {'quantity': 0}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['items'], [])

    def test_set_quantity_above_stock(self):
        self.add(2)
        resp = self.client.put(f'/api/store/cart/items/{self.product.pk}/', {'quantity': 6}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(CartItem.objects.get().quantity, 2)

    def test_set_quantity_missing_line(self):
        self.client.get('/api/store/cart/')
        resp = self.client.put(f'/api/store/cart/items/{self.product.pk}/', {'quantity': 1}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_set_quantity_without_cart(self):
        resp = self.client.put(f'/api/store/cart/items/{self.product.pk}/', {'quantity': 1}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_decrement_to_zero_removes_line(self):
        self.add(1)
        resp = self.client.patch(f'/api/store/cart/items/{self.product.pk}/', {'change': -1}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(CartItem.objects.exists())

    def test_increment_is_bounded_by_stock(self):
        self.add(5)
        resp = self.client.patch(f'/api/store/cart/items/{self.product.pk}/', {'change': 1}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_must_be_one_step(self):
        self.add(1)
        resp = self.client.patch(f'/api/store/cart/items/{self.product.pk}/', {'change': 3}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_line(self):
        self.add(1)
        resp = self.client.delete(f'/api/store/cart/items/{self.product.pk}/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(CartItem.objects.exists())

    def test_remove_absent_line(self):
        self.client.get('/api/store/cart/')
        resp = self.client.delete(f'/api/store/cart/items/{self.product.pk}/')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_clear_cart(self):
        second = Product.objects.create(name='Second', description='B', price='1.50', stock=3)
        self.add(1)
        self.add(2, product=second)
        resp = self.client.delete('/api/store/cart/clear/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['items'], [])

    def test_cart_requires_authentication(self):
        self.client.force_authenticate(user=None)
        resp = self.client.get('/api/store/cart/')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class AdminCartTests(StoreTestMixin, APITestCase):
    def setUp(self):
        cache.clear()
        self.create_users()
        self.product = Product.objects.create(name='Lamp', description='Bright', price='4.00', stock=10)
        cart = Cart.objects.create(customer=self.customer)
        CartItem.objects.create(cart=cart, product=self.product, quantity=3)
        Cart.objects.create(customer=self.other)

    def test_admin_lists_non_empty_carts(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.get('/api/store/cart/admin/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data['data']), 1)
        cart = resp.data['data'][0]
        self.assertEqual(cart['username'], 'customer')
        self.assertEqual(cart['total_items'], 3)
        self.assertEqual(cart['total_amount'], '12.00')

    def test_admin_clears_user_cart(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.delete(f'/api/store/cart/admin/{self.customer.pk}/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(CartItem.objects.exists())

    def test_admin_clear_without_cart(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.delete(f'/api/store/cart/admin/{self.admin.pk}/')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_customer_cannot_list_carts(self):
        self.client.force_authenticate(user=self.customer)
        resp = self.client.get('/api/store/cart/admin/')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class ProductCatalogTests(StoreTestMixin, APITestCase):
    def setUp(self):
        cache.clear()
        self.create_users()
        self.electronics = Category.objects.create(name='Electronics')
        self.books = Category.objects.create(name='Books')
        for i in range(7):
            Product.objects.create(
                name=f'Widget {i}', description='Plain widget', price=f'{10 + i}.00',
                stock=i, category=self.electronics
            )
        self.novel = Product.objects.create(
            name='Novel', description='A gripping WIDGET mystery', price='25.00', stock=2, category=self.books
        )

    def test_list_is_paginated_by_six(self):
        resp = self.client.get('/api/store/products/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.data['data']
        self.assertEqual(len(data['results']), 6)
        self.assertEqual(data['page'], 1)
        self.assertEqual(data['total_pages'], 2)
        self.assertEqual(data['total_items'], 8)

    def test_limit_and_page(self):
        resp = self.client.get('/api/store/products/', {'limit': 5, 'page': 2})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(len(resp.data['data']['results']), 3)

    def test_page_past_the_end_is_empty(self):
        resp = self.client.get('/api/store/products/', {'page': 5})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.data['data']
        self.assertEqual(data['results'], [])
        self.assertEqual(data['page'], 5)
        self.assertEqual(data['total_pages'], 2)
        self.assertEqual(data['total_items'], 8)

        resp = self.client.get('/api/store/products/', {'search': 'zzz', 'page': 2})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['results'], [])
        self.assertEqual(resp.data['data']['total_items'], 0)

    def test_unparseable_page_falls_back_to_first(self):
        for page in ('abc', '0', '-3'):
            resp = self.client.get('/api/store/products/', {'page': page})
            self.assertEqual(resp.status_code, status.HTTP_200_OK, page)
            self.assertEqual(resp.data['data']['page'], 1)
            self.assertEqual(len(resp.data['data']['results']), 6)

    def test_search_matches_description_case_insensitively(self):
        resp = self.client.get('/api/store/products/', {'search': 'mystery'})
        names = [p['name'] for p in resp.data['data']['results']]
        self.assertEqual(names, ['Novel'])

        resp = self.client.get('/api/store/products/', {'search': 'widget', 'limit': 20})
        self.assertEqual(resp.data['data']['total_items'], 8)

    def test_category_filter(self):
        resp = self.client.get('/api/store/products/', {'category': 'books'})
        self.assertEqual(resp.data['data']['total_items'], 1)
        resp = self.client.get('/api/store/products/', {'category': 'All'})
        self.assertEqual(resp.data['data']['total_items'], 8)

    def test_price_range_is_inclusive(self):
        resp = self.client.get('/api/store/products/', {'min_price': '12', 'max_price': '14'})
        prices = sorted(p['price'] for p in resp.data['data']['results'])
        self.assertEqual(prices, ['12.00', '13.00', '14.00'])

    def test_detail_and_missing(self):
        resp = self.client.get(f'/api/store/products/{self.novel.pk}/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['data']['category'], 'Books')
        self.assertTrue(resp.data['data']['image_url'].endswith('placeholder.svg'))

        resp = self.client.get('/api/store/products/99999/')
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(resp.data['success'])

    def test_admin_creates_product(self):
        self.client.force_authenticate(user=self.admin)
        payload = {
            'name': 'Headphones', 'description': 'Noise cancelling',
            'price': '99.99', 'category': 'electronics', 'stock': 4
        }
        resp = self.client.post('/api/store/products/', payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(name='Headphones')
        self.assertEqual(product.category, self.electronics)
        self.assertEqual(product.created_by, self.admin)

    def test_create_requires_all_fields(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post('/api/store/products/', {'name': 'Incomplete'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('description', 'price', 'category', 'stock'):
            self.assertIn(field, resp.data['error'])

    def test_create_with_unknown_category(self):
        self.client.force_authenticate(user=self.admin)
        payload = {'name': 'X', 'description': 'Y', 'price': '1.00', 'category': 'Garden', 'stock': 1}
        resp = self.client.post('/api/store/products/', payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_negative_price_rejected(self):
        self.client.force_authenticate(user=self.admin)
        payload = {'name': 'X', 'description': 'Y', 'price': '-1.00', 'category': 'Books', 'stock': 1}
        resp = self.client.post('/api/store/products/', payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_customer_cannot_create(self):
        self.client.force_authenticate(user=self.customer)
        payload = {'name': 'X', 'description': 'Y', 'price': '1.00', 'category': 'Books', 'stock': 1}
        resp = self.client.post('/api/store/products/', payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_cannot_create(self):
        resp = self.client.post('/api/store/products/', {}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_partial_update(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.put(f'/api/store/products/{self.novel.pk}/', {'stock': 9}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.novel.refresh_from_db()
        self.assertEqual(self.novel.stock, 9)
        self.assertEqual(self.novel.name, 'Novel')

    def test_delete(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.delete(f'/api/store/products/{self.novel.pk}/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(Product.objects.filter(pk=self.novel.pk).exists())


class ProductImageTests(StoreTestMixin, APITestCase):
    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.media_root = tempfile.mkdtemp()
        cls._media_override = override_settings(MEDIA_ROOT=cls.media_root)
        cls._media_override.enable()

    @classmethod
    def tearDownClass(cls):
        cls._media_override.disable()
        shutil.rmtree(cls.media_root, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        cache.clear()
        self.create_users()
        self.category = Category.objects.create(name='Art')
        self.product = Product.objects.create(name='Print', description='Poster', price='5.00', stock=1, category=self.category)
        self.client.force_authenticate(user=self.admin)

    def upload(self, upload):
        return self.client.post(f'/api/store/products/{self.product.pk}/image/', {'image': upload}, format='multipart')

    def test_upload_image(self):
        resp = self.upload(make_image())
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertTrue(self.product.image.name.startswith('products/'))
        self.assertTrue(os.path.exists(self.product.image.path))
        self.assertIn('/media/products/', resp.data['data']['image_url'])

    def test_replacing_image_deletes_previous_file(self):
        self.upload(make_image('first.png'))
        self.product.refresh_from_db()
        first_path = self.product.image.path

        with self.captureOnCommitCallbacks(execute=True):
            resp = self.upload(make_image('second.gif', fmt='GIF', content_type='image/gif'))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(os.path.exists(first_path))

    def test_failed_replacement_keeps_previous_file(self):
        self.upload(make_image('first.png'))
        self.product.refresh_from_db()
        first_name = self.product.image.name
        first_path = self.product.image.path

        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(RuntimeError):
                with transaction.atomic():
                    self.product.image = make_image('second.png')
                    self.product.save()
                    raise RuntimeError('write failed after save')

        self.assertTrue(os.path.exists(first_path))
        self.assertEqual(Product.objects.get(pk=self.product.pk).image.name, first_name)

    def test_deleting_product_removes_image(self):
        self.upload(make_image())
        self.product.refresh_from_db()
        path = self.product.image.path
        self.client.delete(f'/api/store/products/{self.product.pk}/')
        self.assertFalse(os.path.exists(path))

    def test_rejects_unsupported_type(self):
        buffer = io.BytesIO()
        Image.new('RGB', (8, 8)).save(buffer, format='BMP')
        resp = self.upload(SimpleUploadedFile('photo.bmp', buffer.getvalue(), content_type='image/bmp'))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(PRODUCT_IMAGE_MAX_BYTES=10)
    def test_rejects_oversized_image(self):
        resp = self.upload(make_image())
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('File too large', resp.data['error'])

    def test_create_product_with_image(self):
        payload = {
            'name': 'Canvas', 'description': 'Oil', 'price': '50.00',
            'category': 'Art', 'stock': '2', 'image': make_image('canvas.jpg', fmt='JPEG', content_type='image/jpeg')
        }
        resp = self.client.post('/api/store/products/', payload, format='multipart')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Product.objects.get(name='Canvas').image.name.startswith('products/'))


class CategoryTests(StoreTestMixin, APITestCase):
    def setUp(self):
        cache.clear()
        self.create_users()
        self.kitchen = Category.objects.create(name='Kitchen')
        Category.objects.create(name='Audio')

    def test_list_is_ordered_by_name(self):
        resp = self.client.get('/api/store/categories/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in resp.data['data']], ['Audio', 'Kitchen'])

    def test_create_trims_and_rejects_duplicates(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post('/api/store/categories/', {'name': '  Garden  '}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data['data']['name'], 'Garden')

        resp = self.client.post('/api/store/categories/', {'name': 'garden'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_name_length_limit(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post('/api/store/categories/', {'name': 'x' * 51}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rename_checks_other_categories(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.put(f'/api/store/categories/{self.kitchen.pk}/', {'name': 'Audio'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.put(f'/api/store/categories/{self.kitchen.pk}/', {'name': 'Kitchenware'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_delete_keeps_products(self):
        product = Product.objects.create(name='Pan', description='Steel', price='8.00', stock=1, category=self.kitchen)
        self.client.force_authenticate(user=self.admin)
        resp = self.client.delete(f'/api/store/categories/{self.kitchen.pk}/')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertIsNone(product.category)

    def test_customer_cannot_create(self):
        self.client.force_authenticate(user=self.customer)
        resp = self.client.post('/api/store/categories/', {'name': 'Toys'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
