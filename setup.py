import io
import setuptools

VERSION='1.0.0'

setuptools.setup(name='pyisobar',
                 version=VERSION,
                 description='Pure python El Torito boot image extractor',
                 long_description=io.open('README.md', encoding='UTF-8').read(),
                 long_description_content_type='text/markdown',
                 license='LGPLv2',
                 classifiers=['Development Status :: 5 - Production/Stable',
                              'Intended Audience :: Developers',
                              'License :: OSI Approved :: GNU Lesser General Public License v2 (LGPLv2)',
                              'Natural Language :: English',
                              'Programming Language :: Python :: 3',
                 ],
                 keywords='iso9660 iso ecma119 eltorito boot',
                 packages=['pyisobar'],
                 python_requires='>=3.6',
                 install_requires=['pywin32; sys_platform == "win32"'],
                 extras_require={'test': ['pytest']},
                 package_data={'': ['examples/*.py']},
                 scripts=['tools/pyisobar'],
)
